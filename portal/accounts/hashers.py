"""Password hasher for accounts imported from the previous portal.

Those rows store ``<hex scrypt digest>.<hex salt>`` where the digest is
scrypt(password, salt_hex, N=16384, r=8, p=1, dklen=64). They are kept as
``legacy_scrypt$<digest>.<salt>`` so Django can identify the hasher, and
``must_update`` makes every successful login re-hash them with the active
hasher.
"""
import hashlib
import secrets

from django.contrib.auth.hashers import BasePasswordHasher, mask_hash
from django.utils.crypto import constant_time_compare
from django.utils.translation import gettext_noop as _


class LegacyScryptPasswordHasher(BasePasswordHasher):
    algorithm = "legacy_scrypt"
    work_factor = 2**14
    block_size = 8
    parallelism = 1
    dklen = 64

    def salt(self):
        return secrets.token_hex(16)

    def _derive(self, password, salt):
        return hashlib.scrypt(
            password.encode(),
            salt=salt.encode(),
            n=self.work_factor,
            r=self.block_size,
            p=self.parallelism,
            dklen=self.dklen,
            maxmem=64 * 1024 * 1024,
        ).hex()

    def encode(self, password, salt):
        self._check_encode_args(password, salt)
        return f"{self.algorithm}${self._derive(password, salt)}.{salt}"

    def decode(self, encoded):
        algorithm, rest = encoded.split("$", 1)
        assert algorithm == self.algorithm
        digest, salt = rest.split(".", 1)
        return {"algorithm": algorithm, "hash": digest, "salt": salt}

    def verify(self, password, encoded):
        try:
            decoded = self.decode(encoded)
        except (ValueError, AssertionError):
            return False
        if not decoded["hash"] or not decoded["salt"]:
            return False
        return constant_time_compare(decoded["hash"], self._derive(password, decoded["salt"]))

    def safe_summary(self, encoded):
        decoded = self.decode(encoded)
        return {
            _("algorithm"): decoded["algorithm"],
            _("salt"): mask_hash(decoded["salt"], show=2),
            _("hash"): mask_hash(decoded["hash"]),
        }

    def must_update(self, encoded):
        return True

    def harden_runtime(self, password, encoded):
        pass
