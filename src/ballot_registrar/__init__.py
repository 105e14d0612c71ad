"""ballot_registrar package - voter registration and ballot-bound vote encryption

Registers voters against one time tokens, signs their registration certs and
publishes the identity-free ballot triplets. Votes are encrypted so that each
cipher is tied to its ballot number.
"""

from . import keys, keygen, protocol, signing, stores, vote_cipher

__all__ = ["keys", "keygen", "protocol", "signing", "stores", "vote_cipher"]
