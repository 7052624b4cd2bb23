import random
import unittest

from l2signer.curve import ec_mult
from l2signer.errors import InvalidHashPayload, InvalidPrivateKey, SignerExhausted
from l2signer.signing import (
    StarkSignature,
    StarkSigner,
    deserialize_signature,
    parse_private_key,
    private_to_stark_key,
    serialize_signature,
    sign,
    verify,
)

from tests.vectors import (
    MOCK_HASH,
    MOCK_HASH_SIGNATURE,
    MOCK_HASH_SIGNATURE_SEED_1,
    MOCK_PRIVATE_KEY,
    MOCK_PUBLIC_KEY,
)

BOUND = 2 ** 251


class TestStarkSigner(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.signer = StarkSigner()
        cls.order = cls.signer.params.ec_order

    def test_public_key(self):
        self.assertEqual(private_to_stark_key(MOCK_PRIVATE_KEY), MOCK_PUBLIC_KEY)
        self.assertEqual(self.signer.stark_key(hex(MOCK_PRIVATE_KEY)), MOCK_PUBLIC_KEY)

    def test_reference_signature(self):
        sig = self.signer.sign(MOCK_HASH, MOCK_PRIVATE_KEY)
        self.assertEqual(sig.to_hex(), MOCK_HASH_SIGNATURE)
        self.assertEqual(str(sig), MOCK_HASH_SIGNATURE)
        self.assertTrue(self.signer.verify_signature(MOCK_HASH, MOCK_HASH_SIGNATURE, MOCK_PUBLIC_KEY))

    def test_sign_is_deterministic(self):
        self.assertEqual(sign(MOCK_HASH, MOCK_PRIVATE_KEY), sign(MOCK_HASH, MOCK_PRIVATE_KEY))

    def test_round_trip_random(self):
        rng = random.Random(5)
        for _ in range(4):
            priv = rng.randrange(1, self.order)
            msg_hash = rng.randrange(1, BOUND)
            sig = self.signer.sign(msg_hash, priv)
            self.assertTrue(1 <= sig.r < BOUND)
            self.assertTrue(1 <= sig.s < BOUND)
            self.assertTrue(verify(msg_hash, sig.r, sig.s, self.signer.stark_key(priv)))
            self.assertTrue(verify(msg_hash, sig.r, sig.s, self.signer.public_key(priv)))

    def test_verify_rejects_tampering(self):
        sig = StarkSignature.from_hex(MOCK_HASH_SIGNATURE)
        self.assertFalse(verify(MOCK_HASH + 1, sig.r, sig.s, MOCK_PUBLIC_KEY))
        self.assertFalse(verify(MOCK_HASH, sig.r, sig.s + 1, MOCK_PUBLIC_KEY))
        self.assertFalse(verify(MOCK_HASH, sig.r, sig.s, private_to_stark_key(2)))

    def test_verify_out_of_range(self):
        sig = StarkSignature.from_hex(MOCK_HASH_SIGNATURE)
        self.assertFalse(verify(MOCK_HASH, 0, sig.s, MOCK_PUBLIC_KEY))
        self.assertFalse(verify(MOCK_HASH, BOUND, sig.s, MOCK_PUBLIC_KEY))
        self.assertFalse(verify(MOCK_HASH, sig.r, 0, MOCK_PUBLIC_KEY))
        self.assertFalse(verify(MOCK_HASH, sig.r, self.order, MOCK_PUBLIC_KEY))
        self.assertFalse(verify(MOCK_HASH, sig.r, sig.s, (MOCK_PUBLIC_KEY, 1)))

    def test_zero_hash_signs_but_does_not_verify(self):
        sig = self.signer.sign(0, MOCK_PRIVATE_KEY)
        self.assertTrue(1 <= sig.r < BOUND)
        self.assertTrue(1 <= sig.s < BOUND)
        self.assertFalse(self.signer.verify(0, sig.r, sig.s, MOCK_PUBLIC_KEY))

    def test_hash_out_of_range(self):
        with self.assertRaises(InvalidHashPayload):
            self.signer.sign(BOUND, MOCK_PRIVATE_KEY)
        with self.assertRaises(InvalidHashPayload):
            self.signer.sign(-1, MOCK_PRIVATE_KEY)

    def test_seed_progression(self):
        seen = []

        def reject_first(k, seed):
            seen.append(seed)
            return seed == 0

        signer = StarkSigner(reject_k=reject_first)
        sig = signer.sign(MOCK_HASH, MOCK_PRIVATE_KEY)
        self.assertEqual(seen, [0, 1])
        self.assertEqual(sig.to_hex(), MOCK_HASH_SIGNATURE_SEED_1)
        self.assertNotEqual(sig.to_hex(), MOCK_HASH_SIGNATURE)
        self.assertTrue(signer.verify(MOCK_HASH, sig.r, sig.s, MOCK_PUBLIC_KEY))

    def test_signer_exhausted(self):
        signer = StarkSigner(max_attempts=3, reject_k=lambda k, seed: True)
        with self.assertRaises(SignerExhausted):
            signer.sign(MOCK_HASH, MOCK_PRIVATE_KEY)
        with self.assertRaises(RuntimeError):
            signer.sign(MOCK_HASH, MOCK_PRIVATE_KEY)

    def test_max_attempts_validation(self):
        with self.assertRaises(ValueError):
            StarkSigner(max_attempts=0)

    def test_public_key_matches_generator_multiple(self):
        p = self.signer.params
        self.assertEqual(self.signer.public_key(7), ec_mult(7, p.ec_gen, p.alpha, p.field_prime))


class TestKeyParsing(unittest.TestCase):
    ORDER = 3618502788666131213697322783095070105526743751716087489154079457884512865583

    def test_accepts_prefixed_strings(self):
        self.assertEqual(parse_private_key("0x1f", self.ORDER), 31)
        self.assertEqual(parse_private_key("0o17", self.ORDER), 15)
        self.assertEqual(parse_private_key("0b101", self.ORDER), 5)
        self.assertEqual(parse_private_key(" 42 ", self.ORDER), 42)
        self.assertEqual(parse_private_key(42, self.ORDER), 42)

    def test_rejects_bad_keys(self):
        for bad in ("", "   ", "0xzz", "abc", 0, -5, self.ORDER, True, 1.5, None):
            with self.assertRaises(InvalidPrivateKey):
                parse_private_key(bad, self.ORDER)

    def test_invalid_key_is_value_error(self):
        with self.assertRaises(ValueError):
            sign(MOCK_HASH, "not a key")


class TestSignatureSerialization(unittest.TestCase):
    def test_serialize(self):
        self.assertEqual(serialize_signature(1, 2), "0" * 63 + "1" + "0" * 63 + "2")

    def test_serialize_rejects_oversized(self):
        with self.assertRaises(ValueError):
            serialize_signature(2 ** 256, 1)
        with self.assertRaises(ValueError):
            serialize_signature(-1, 1)

    def test_deserialize(self):
        r, s = deserialize_signature(MOCK_HASH_SIGNATURE)
        self.assertEqual(serialize_signature(r, s), MOCK_HASH_SIGNATURE)
        self.assertEqual(deserialize_signature("0x" + MOCK_HASH_SIGNATURE), (r, s))

    def test_deserialize_rejects_bad_length(self):
        with self.assertRaises(ValueError):
            deserialize_signature(MOCK_HASH_SIGNATURE[:-1])
        with self.assertRaises(ValueError):
            deserialize_signature(MOCK_HASH_SIGNATURE + "00")


if __name__ == "__main__":
    unittest.main()
