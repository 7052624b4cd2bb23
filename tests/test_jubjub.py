import unittest

from l2signer.errors import InvalidPublicKey
from l2signer.field import div_mod, is_quad_residue
from l2signer.jubjub import (
    A,
    EDWARDS_D,
    FIELD_MODULUS,
    GENERATOR,
    MONTGOMERY_A,
    SCALE,
    SUBGROUP_ORDER,
    Point,
)

# the same subgroup generator in the a = 168700, d = 168696 coordinates
EIP2494_A, EIP2494_D = 168700, 168696
EIP2494_BASE8 = (
    5299619240641551281634865583518297030282874472190772894086521144482721001553,
    16950150798460657717958625567821834550301663161624707787222815936182638968203,
)


class TestCurveConstants(unittest.TestCase):
    def test_a_minus_one_form(self):
        self.assertEqual(A, FIELD_MODULUS - 1)
        self.assertEqual(
            EDWARDS_D,
            12181644023421730124874158521699555681764249180949974110617291017600649128846,
        )
        self.assertEqual(div_mod(-EIP2494_D, EIP2494_A, FIELD_MODULUS), EDWARDS_D)

    def test_montgomery_relations(self):
        r = FIELD_MODULUS
        self.assertEqual(div_mod(2 * (A + EDWARDS_D), A - EDWARDS_D, r), MONTGOMERY_A)
        self.assertEqual(SCALE * SCALE % r, (-(MONTGOMERY_A + 2)) % r)
        self.assertEqual(SCALE * SCALE % r, (-EIP2494_A) % r)

    def test_complete_addition_law(self):
        self.assertTrue(is_quad_residue(A, FIELD_MODULUS))
        self.assertFalse(is_quad_residue(EDWARDS_D, FIELD_MODULUS))

    def test_generator_is_scaled_base8(self):
        x, y = EIP2494_BASE8
        self.assertEqual(GENERATOR, (x * SCALE % FIELD_MODULUS, y))
        self.assertFalse(Point(x, y).is_on_curve())


class TestAltJubjub(unittest.TestCase):
    def setUp(self):
        self.G = Point.generator()

    def test_generator(self):
        self.assertEqual(self.G.to_tuple(), GENERATOR)
        self.assertTrue(self.G.is_on_curve())
        self.assertTrue(self.G.in_subgroup())
        self.assertTrue((SUBGROUP_ORDER * self.G).is_identity())

    def test_known_multiple(self):
        self.assertEqual(
            (5 * self.G).to_tuple(),
            (
                18154746938435735154025836942645236005106291185262404641837144409467692106266,
                15148236048131954717802795400425086368006776860859772698778589175317365693546,
            ),
        )

    def test_identity(self):
        O = Point.identity()
        self.assertEqual(O + self.G, self.G)
        self.assertEqual(self.G + O, self.G)
        self.assertTrue((self.G - self.G).is_identity())
        self.assertTrue((0 * self.G).is_identity())

    def test_group_law(self):
        self.assertEqual(2 * self.G, self.G + self.G)
        self.assertEqual(self.G * 3, self.G + self.G + self.G)
        a, b = 123456789, 987654321987654321
        self.assertEqual((a + b) * self.G, a * self.G + b * self.G)
        self.assertEqual((-a) * self.G, -(a * self.G))
        self.assertTrue((7 * self.G).is_on_curve())

    def test_scalar_must_be_int(self):
        with self.assertRaises(TypeError):
            1.5 * self.G

    def test_pack_round_trip(self):
        for k in (1, 2, 3, 5, 1000, SUBGROUP_ORDER - 1):
            P = Point.from_scalar(k)
            packed = P.pack()
            self.assertEqual(len(packed), 32)
            self.assertEqual(Point.unpack(packed), P)
            self.assertEqual(Point.unpack((-P).pack()), -P)

    def test_pack_sign_bit_is_x_parity(self):
        # GENERATOR.x is even, so its negation is odd
        self.assertFalse(self.G.pack()[-1] & 0x80)
        self.assertTrue((-self.G).pack()[-1] & 0x80)
        self.assertEqual(self.G.pack(), GENERATOR[1].to_bytes(32, "little"))

    def test_pack_identity(self):
        self.assertEqual(Point.identity().pack(), (1).to_bytes(32, "little"))
        self.assertTrue(Point.unpack((1).to_bytes(32, "little")).is_identity())

    def test_unpack_rejects_bad_input(self):
        with self.assertRaises(InvalidPublicKey):
            Point.unpack(b"\x00" * 31)
        with self.assertRaises(InvalidPublicKey):
            Point.unpack(FIELD_MODULUS.to_bytes(32, "little"))

    def test_unpack_rejects_off_curve(self):
        y = 2
        while True:
            y2 = y * y % FIELD_MODULUS
            if not is_quad_residue(div_mod(1 - y2, A - EDWARDS_D * y2, FIELD_MODULUS), FIELD_MODULUS):
                break
            y += 1
        with self.assertRaises(InvalidPublicKey):
            Point.unpack(y.to_bytes(32, "little"))

    def test_hashable(self):
        self.assertEqual(len({self.G, Point(*GENERATOR), 2 * self.G}), 2)


if __name__ == "__main__":
    unittest.main()
