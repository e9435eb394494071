"""
Constants module for efikeygen.

This module defines:
- Object identifiers for the extensions and algorithms efikeygen emits
- Fixed extension values used for secure-boot signing certificates
- Defaults for the credential store and certificate validity
"""

# =========================================================================
# Object identifiers
# =========================================================================

OID_SUBJECT_KEY_IDENTIFIER = "2.5.29.14"
OID_KEY_USAGE = "2.5.29.15"
OID_BASIC_CONSTRAINTS = "2.5.29.19"
OID_AUTHORITY_KEY_IDENTIFIER = "2.5.29.35"
OID_EXTENDED_KEY_USAGE = "2.5.29.37"
OID_AUTHORITY_INFO_ACCESS = "1.3.6.1.5.5.7.1.1"

OID_CODE_SIGNING = "1.3.6.1.5.5.7.3.3"
OID_CA_ISSUERS = "1.3.6.1.5.5.7.48.2"

OID_SHA256_WITH_RSA = "1.2.840.113549.1.1.11"

# Extension names used in log and error messages
EXTENSION_NAMES = {
    OID_SUBJECT_KEY_IDENTIFIER: "subject key identifier",
    OID_KEY_USAGE: "key usage",
    OID_BASIC_CONSTRAINTS: "basic constraints",
    OID_AUTHORITY_KEY_IDENTIFIER: "authority key identifier",
    OID_EXTENDED_KEY_USAGE: "extended key usage",
    OID_AUTHORITY_INFO_ACCESS: "authority information access",
}

# =========================================================================
# Fixed extension values
# =========================================================================

# BIT STRING, 1 unused bit: digitalSignature, keyCertSign, cRLSign
KEY_USAGE_CA = b"\x03\x02\x01\x86"

# SEQUENCE { codeSigning }
EXTENDED_KEY_USAGE_CODE_SIGNING = (
    b"\x30\x0a\x06\x08\x2b\x06\x01\x05\x05\x07\x03\x03"
)

# =========================================================================
# DER tags
# =========================================================================

DER_BIT_STRING = 0x03
DER_OCTET_STRING = 0x04

# =========================================================================
# Defaults
# =========================================================================

DEFAULT_TOKEN = "NSS Certificate DB"
DEFAULT_DATABASE = "/etc/pki/pesign"
DEFAULT_OUTPUT = "signed.cer"
DEFAULT_VALIDITY_DAYS = 3650

MAX_SERIAL_NUMBER = 2**64 - 1

# PKCS#12 bundle suffixes recognized in the credential store
CREDENTIAL_SUFFIXES = (".p12", ".pfx")
