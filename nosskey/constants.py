"""
nosskey.constants
-----------------
Fixed values shared by the key-wrapping core. Changing any of these breaks
compatibility with records already persisted by callers.
"""

RECORD_VERSION = 1

ALG_AES_GCM_256 = "aes-gcm-256"
ALG_PRF_DIRECT = "prf-direct"

# Domain separation label for HKDF, and the PRF eval input sent to the authenticator
HKDF_INFO = b"nostr-pwk"
PRF_EVAL_INPUT = b"nostr-pwk"

SECRET_KEY_LEN = 32
AES_KEY_LEN = 32     # 256-bit
SALT_LEN = 16
IV_LEN = 12
TAG_LEN = 16

DEFAULT_CACHE_TIMEOUT_MS = 5 * 60 * 1000
DEFAULT_STORAGE_KEY = "nosskey_pwk"
DEFAULT_DB_PATH = "db/nosskey.db"

DEFAULT_RP_NAME = "Nosskey"
DEFAULT_USER_NAME = "user@example.com"
DEFAULT_USER_DISPLAY_NAME = "Nosskey user"
COSE_ALG_ES256 = -7
