import re
import unittest
from pathlib import Path

import l2signer

ROOT = Path(__file__).resolve().parent.parent


class TestProjectMetadata(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.pyproject = (ROOT / "pyproject.toml").read_text(encoding="utf-8")

    def _value(self, key):
        match = re.search(rf'^{key}\s*=\s*"([^"]*)"', self.pyproject, re.MULTILINE)
        self.assertIsNotNone(match, key)
        return match.group(1)

    def test_readme(self):
        readme = self._value("readme")
        self.assertEqual(readme, "README.md")
        text = (ROOT / readme).read_text(encoding="utf-8")
        self.assertTrue(text.startswith("# l2signer"))

    def test_version(self):
        self.assertEqual(self._value("version"), l2signer.__version__)


if __name__ == "__main__":
    unittest.main()
