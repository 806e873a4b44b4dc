from base64 import b64decode, b64encode
from hashlib import pbkdf2_hmac, sha256
from typing import Optional, Union

from Cryptodome import Random
from Cryptodome.Cipher import AES


def random_secret_and_hash(length: int = 32) -> tuple[str, str]:
    secret = Random.new().read(length)
    return secret.hex(), sha256(secret).hexdigest()


def random_preimage() -> str:
    return Random.new().read(32).hex()


def calculate_hash(data: str) -> str:
    return sha256(data.encode()).hexdigest()


def fake_privkey(secret: str) -> str:
    return pbkdf2_hmac(
        "sha256",
        secret.encode(),
        b"FakeWallet",
        2048,
        32,
    ).hex()


def verify_preimage(preimage: str, payment_hash: str) -> bool:
    try:
        preimage_bytes = bytes.fromhex(preimage)
    except ValueError:
        return False
    calculated_hash = sha256(preimage_bytes).hexdigest()
    return calculated_hash == payment_hash


class AESCipher:
    """
    AES-256-CBC with PKCS#7 padding and an explicit, base64 encoded IV,
    as used by the lnurl-pay `aes` success action (LUD-10).
    :param key: The key to use for en-/decryption. It can be bytes or a hex string.
    A payment preimage is the usual key.
    """

    def __init__(self, key: Union[bytes, str], block_size: int = 16):
        self.block_size = block_size
        if isinstance(key, bytes):
            self.key = key
        else:
            try:
                self.key = bytes.fromhex(key)
            except ValueError:
                self.key = key.encode()

        if len(self.key) not in (16, 24, 32):
            raise ValueError(f"Invalid AES key length: {len(self.key)} bytes.")

    def pad(self, data: bytes) -> bytes:
        length = self.block_size - (len(data) % self.block_size)
        return data + bytes([length]) * length

    def unpad(self, data: bytes) -> bytes:
        if not data:
            raise ValueError("Nothing to unpad.")
        padding = data[-1]
        if padding < 1 or padding > self.block_size:
            raise ValueError("Invalid padding.")
        if data[-padding:] != bytes([padding]) * padding:
            raise ValueError("Invalid padding.")
        return data[:-padding]

    def decrypt(self, ciphertext: str, iv: str) -> str:
        """Decrypts a base64 encoded ciphertext using AES-256-CBC."""
        try:
            encrypted_bytes = b64decode(ciphertext, validate=True)
            iv_bytes = b64decode(iv, validate=True)
        except ValueError as exc:
            raise ValueError("Invalid base64 in ciphertext or iv.") from exc

        if len(iv_bytes) != 16:
            raise ValueError("IV must be 16 bytes.")
        if not encrypted_bytes or len(encrypted_bytes) % self.block_size != 0:
            raise ValueError("Ciphertext length is not a multiple of the block size.")

        aes = AES.new(self.key, AES.MODE_CBC, iv_bytes)
        decrypted_bytes = aes.decrypt(encrypted_bytes)
        unpadded = self.unpad(decrypted_bytes)

        try:
            return unpadded.decode()
        except UnicodeDecodeError as exc:
            raise ValueError("Decryption resulted in invalid UTF-8 data.") from exc

    def encrypt(self, message: bytes, iv: Optional[bytes] = None) -> tuple[str, str]:
        """
        Encrypts bytes using AES-256-CBC.
        Returns the base64 encoded ciphertext and iv.
        """
        iv = iv or Random.new().read(16)
        aes = AES.new(self.key, AES.MODE_CBC, iv)
        encrypted = aes.encrypt(self.pad(message))
        return b64encode(encrypted).decode(), b64encode(iv).decode()
