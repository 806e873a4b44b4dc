from base64 import b64encode

import pytest

from lnurlbot.core.models import AesAction
from lnurlbot.utils.crypto import AESCipher, random_preimage


@pytest.mark.anyio
@pytest.mark.parametrize(
    "key",
    [
        "sixteen_byte_key",
        b"32 bytes of normal bytes, padded",
        b"twenty-four byte key....".hex(),
        random_preimage(),
    ],
)
async def test_aes_encrypt_decrypt(key):
    aes = AESCipher(key)
    original_text = "Hello, World!"
    ciphertext, iv = aes.encrypt(original_text.encode())
    decrypted_text = aes.decrypt(ciphertext, iv)
    assert original_text == decrypted_text


def test_aes_fixed_iv():
    aes = AESCipher(bytes(32))
    ciphertext, iv = aes.encrypt(b"message", iv=bytes(16))
    assert iv == b64encode(bytes(16)).decode()
    assert aes.decrypt(ciphertext, iv) == "message"


@pytest.mark.parametrize("key", [b"short", "normal_string", bytes(33)])
def test_aes_invalid_key_length(key):
    with pytest.raises(ValueError, match="Invalid AES key length"):
        AESCipher(key)


def test_aes_invalid_input():
    aes = AESCipher(bytes(32))
    ciphertext, iv = aes.encrypt(b"message")

    with pytest.raises(ValueError, match="Invalid base64"):
        aes.decrypt("not base64!", iv)
    with pytest.raises(ValueError, match="IV must be 16 bytes"):
        aes.decrypt(ciphertext, b64encode(bytes(8)).decode())
    with pytest.raises(ValueError, match="multiple of the block size"):
        aes.decrypt(b64encode(bytes(20)).decode(), iv)


def test_aes_unpad():
    aes = AESCipher(bytes(16))
    assert aes.unpad(b"abc" + bytes([13]) * 13) == b"abc"
    with pytest.raises(ValueError, match="Invalid padding"):
        aes.unpad(b"abc" + bytes([13]) * 12 + bytes([12]))
    with pytest.raises(ValueError, match="Invalid padding"):
        aes.unpad(bytes(16))


def test_aes_success_action():
    preimage = random_preimage()
    ciphertext, iv = AESCipher(preimage).encrypt(b"1234-5678")
    action = AesAction(description="voucher", ciphertext=ciphertext, iv=iv)

    assert action.decrypt(preimage) == "1234-5678"
