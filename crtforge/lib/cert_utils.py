"""Certificate utility functions for chain assembly and summary metadata."""

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey


def generate_private_key(key_size: int = 2048) -> RSAPrivateKey:
    """Generate RSA private key with specified size."""
    return rsa.generate_private_key(
        public_exponent=65537,
        key_size=key_size,
    )


def serialize_private_key(key: RSAPrivateKey) -> bytes:
    """Serialize private key to PEM format (PKCS8, no encryption)."""
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def serialize_certificate(cert: x509.Certificate) -> bytes:
    """Serialize certificate to PEM format."""
    return cert.public_bytes(serialization.Encoding.PEM)


def deserialize_certificate(pem_data: bytes) -> x509.Certificate:
    """Deserialize certificate from PEM bytes."""
    return x509.load_pem_x509_certificate(pem_data)


def get_certificate_serial_hex(cert: x509.Certificate) -> str:
    """Return certificate serial number as hex with colons (e.g., 3A:F2:B1:...)."""
    serial_hex = f"{cert.serial_number:X}"
    if len(serial_hex) % 2 != 0:
        serial_hex = "0" + serial_hex
    return ":".join(serial_hex[i : i + 2] for i in range(0, len(serial_hex), 2))


def create_fullchain_bundle(
    leaf_cert_pem: bytes, intermediate_cert_pem: bytes, root_cert_pem: bytes
) -> bytes:
    """Concatenate Leaf + Intermediate + Root certs exactly as read, no separators.

    Leaf first is the order TLS clients expect when validating a served chain.
    """
    return leaf_cert_pem + intermediate_cert_pem + root_cert_pem


def describe_certificate(pem_data: bytes) -> dict[str, str]:
    """Extract summary fields (subject CN, serial, validity) from a PEM certificate.

    Raises:
        ValueError: If the data is not a PEM certificate
    """
    cert = deserialize_certificate(pem_data)
    cn_attributes = cert.subject.get_attributes_for_oid(x509.NameOID.COMMON_NAME)
    common_name = cn_attributes[0].value if cn_attributes else ""
    return {
        "commonName": str(common_name),
        "serialNumber": get_certificate_serial_hex(cert),
        "notBefore": cert.not_valid_before_utc.isoformat(),
        "expiry": cert.not_valid_after_utc.isoformat(),
    }
