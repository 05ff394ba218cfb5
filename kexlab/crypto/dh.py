"""Classic DH helpers + Trunc16(SHA1(Ks)) derivation."""

from kexlab.common.utils import SYSTEM_RNG, int_to_bytes, sha1

KEY_SIZE = 16


def generate_private(p: int, rng=None) -> int:
    """
    Generate a random private exponent in [1, p-1).

    :param p: prime modulus
    :param rng: random.Random-compatible source (system RNG by default)
    :return: private exponent
    """
    rng = rng or SYSTEM_RNG
    return rng.randrange(1, p - 1)


def compute_public(g: int, p: int, private: int) -> int:
    """
    Compute public value A = g^a mod p.
    """
    return pow(g, private, p)


def compute_shared(peer_public: int, p: int, private: int) -> int:
    """
    Compute shared secret Ks = (peer_public)^a mod p.
    """
    return pow(peer_public, private, p)


def derive_key_from_shared(shared_int: int) -> bytes:
    """
    Derive the AES-128 session key from the shared DH integer:

        K = Trunc16(SHA1(big-endian(Ks)))

    Zero is a legal input here: the MITM attacks force it.
    """
    return sha1(int_to_bytes(shared_int))[:KEY_SIZE]


class KeyPair:
    """
    Ephemeral key pair for one handshake.

    The private exponent stays inside the object; only the public value and
    the derived key leave it.
    """

    def __init__(self, p: int, g: int, rng=None):
        self.p = p
        self.g = g
        self._private = generate_private(p, rng)
        self.public = compute_public(g, p, self._private)

    def shared_key(self, peer_public: int) -> bytes:
        return derive_key_from_shared(compute_shared(peer_public, self.p, self._private))
