import unittest

from cryptography.fernet import Fernet

from modelswitch.core.exceptions import EncryptionError
from modelswitch.utils.encryption import SecretVault


class TestSecretVault(unittest.TestCase):
    def setUp(self) -> None:
        self.vault = SecretVault(Fernet.generate_key().decode("ascii"))

    def test_encrypt_decrypt(self) -> None:
        cipher = self.vault.encrypt("sk-ant-123456789")
        self.assertNotIn("sk-ant", cipher)
        self.assertEqual(self.vault.decrypt(cipher), "sk-ant-123456789")

    def test_decrypt_with_other_key_fails(self) -> None:
        cipher = SecretVault(Fernet.generate_key().decode("ascii")).encrypt("secret")
        with self.assertRaises(EncryptionError):
            self.vault.decrypt(cipher)

    def test_invalid_key(self) -> None:
        with self.assertRaises(EncryptionError):
            SecretVault("not-a-fernet-key")

    def test_hint(self) -> None:
        self.assertEqual(SecretVault.hint("sk-abcdefgh1234"), "sk-a...1234")
        self.assertEqual(SecretVault.hint("12345678"), "1234...5678")
        self.assertEqual(SecretVault.hint("short"), "***")
        self.assertEqual(SecretVault.hint(None), "***")


if __name__ == "__main__":
    unittest.main()
