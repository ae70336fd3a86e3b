"""Key and certificate generation for inbounds and endpoints."""

import base64
import binascii
import datetime
import os
import struct

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

_ECH_VERSION = 0xFE0D
_KEM_X25519_HKDF_SHA256 = 0x0020
_ECH_CIPHER_SUITES = ((0x0001, 0x0001), (0x0001, 0x0003))  # HKDF-SHA256 with AES-128-GCM, ChaCha20


def _clamp(raw: bytes) -> bytes:
    key = bytearray(raw)
    key[0] &= 248
    key[31] &= 127
    key[31] |= 64
    return bytes(key)


def _new_x25519() -> X25519PrivateKey:
    return X25519PrivateKey.from_private_bytes(_clamp(os.urandom(32)))


def _raw_private(key: X25519PrivateKey) -> bytes:
    return key.private_bytes(
        serialization.Encoding.Raw,
        serialization.PrivateFormat.Raw,
        serialization.NoEncryption(),
    )


def _raw_public(key: X25519PrivateKey) -> bytes:
    return key.public_key().public_bytes(
        serialization.Encoding.Raw, serialization.PublicFormat.Raw
    )


def _std_b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _raw_url_b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def reality_keypair() -> list[str]:
    """Generate an X25519 key pair encoded as unpadded URL-safe base64."""
    key = _new_x25519()
    return [
        "PrivateKey: " + _raw_url_b64(_raw_private(key)),
        "PublicKey: " + _raw_url_b64(_raw_public(key)),
    ]


def wireguard_keys(private_key: str = "") -> list[str]:
    """Return the public key of ``private_key``, or a new key pair when it is empty.

    A private key that cannot be parsed is treated as all zero bytes.
    """
    if private_key:
        try:
            raw = base64.b64decode(private_key, validate=True)
        except (binascii.Error, ValueError):
            raw = b""
        if len(raw) != 32:
            raw = bytes(32)
        key = X25519PrivateKey.from_private_bytes(raw)
        return [_std_b64(_raw_public(key))]
    key = _new_x25519()
    return [
        "PrivateKey: " + _std_b64(_raw_private(key)),
        "PublicKey: " + _std_b64(_raw_public(key)),
    ]


def _one_year_later(moment: datetime.datetime) -> datetime.datetime:
    try:
        return moment.replace(year=moment.year + 1)
    except ValueError:  # 29 February rolls over to 1 March
        return moment.replace(year=moment.year + 1, month=3, day=1)


def tls_keypair(server_name: str) -> list[str]:
    """Create a self-signed Ed25519 certificate valid for one year.

    Returns the lines of the private key PEM followed by the certificate PEM.
    """
    try:
        key = Ed25519PrivateKey.generate()
        now = datetime.datetime.now(datetime.timezone.utc)
        name_attrs = [x509.NameAttribute(NameOID.COMMON_NAME, server_name)] if server_name else []
        name = x509.Name(name_attrs)
        builder = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now)
            .not_valid_after(_one_year_later(now))
            .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=True,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=False,
                    crl_sign=False,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            .add_extension(
                x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]), critical=False
            )
        )
        if server_name:
            builder = builder.add_extension(
                x509.SubjectAlternativeName([x509.DNSName(server_name)]), critical=False
            )
        certificate = builder.sign(key, None)
    except (ValueError, TypeError) as exc:
        return ["Failed to generate TLS keypair: ", str(exc)]
    key_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode("ascii")
    cert_pem = certificate.public_bytes(serialization.Encoding.PEM).decode("ascii")
    return key_pem.split("\n") + cert_pem.split("\n")


def _vec8(data: bytes) -> bytes:
    return struct.pack("!B", len(data)) + data


def _vec16(data: bytes) -> bytes:
    return struct.pack("!H", len(data)) + data


def _pem(label: str, data: bytes) -> str:
    encoded = _std_b64(data)
    body = "".join(encoded[i:i + 64] + "\n" for i in range(0, len(encoded), 64))
    return f"-----BEGIN {label}-----\n{body}-----END {label}-----\n"


def _ech_keypair(options: str) -> list[str]:
    failure = "Failed to generate ECH keypair: "
    parts = options.split(",")
    if len(parts) != 2:
        return [failure, "invalid options"]
    public_name = parts[0].encode("utf-8")
    if parts[1] == "true":
        return [failure, "post-quantum key exchange is not supported"]
    if not 1 <= len(public_name) <= 255:
        return [failure, "invalid server name"]

    key = _new_x25519()
    suites = b"".join(struct.pack("!HH", kdf, aead) for kdf, aead in _ECH_CIPHER_SUITES)
    contents = (
        struct.pack("!BH", 0, _KEM_X25519_HKDF_SHA256)
        + _vec16(_raw_public(key))
        + _vec16(suites)
        + struct.pack("!B", 0)
        + _vec8(public_name)
        + _vec16(b"")
    )
    config = struct.pack("!H", _ECH_VERSION) + _vec16(contents)
    config_pem = _pem("ECH CONFIGS", _vec16(config))
    key_pem = _pem("ECH KEYS", _vec16(_raw_private(key)) + _vec16(config))
    return config_pem.split("\n") + key_pem.split("\n")


def generate_keypair(key_type: str, options: str = "") -> list[str]:
    """Generate key material of the given kind; failures come back as text lines."""
    if not key_type:
        return ["No keypair to generate"]
    if key_type == "ech":
        return _ech_keypair(options)
    if key_type == "tls":
        return tls_keypair(options)
    if key_type == "reality":
        return reality_keypair()
    if key_type == "wireguard":
        return wireguard_keys(options)
    return ["Failed to generate keypair"]


def warp_reserved(client_id: str) -> list[int] | None:
    """Decode a WARP client id into its reserved byte values; None if invalid."""
    try:
        decoded = base64.b64decode(client_id, validate=True)
    except (binascii.Error, ValueError):
        return None
    return list(decoded)