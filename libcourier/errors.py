"""\
All exceptions raised by libcourier.

Every error derives from CourierError, so callers that only
want to know "the operation failed" can catch that one.

"""

class CourierError(Exception):
	""" Base class of all libcourier errors """


# Key errors

class ModeError(CourierError):
	"""\
	A KeyPair was asked for an operation its mode does
	not permit (e.g. decrypting with a public-only key).
	This is always a usage error, retrying won't help.
	"""

class CryptoBackendError(CourierError):
	"""\
	The underlying key operation failed (malformed key
	material, RSA failure, ...).
	"""

class MessageTooLong(CryptoBackendError):
	""" Plaintext exceeds what a single RSA block holds """

class EncodingError(CourierError):
	""" Base64, utf-8 or json decoding of untrusted input failed """

class VerifyError(CourierError):
	""" Signature mismatch, treat as a security event """


# Identity errors

class DuplicateFriend(CourierError):
	pass

class NoSuchFriend(CourierError):
	pass

class UnknownMessage(CourierError):
	""" Message is not addressed to this user """

class InvalidFriendString(CourierError):
	""" Friend exchange string is incomplete """


# Transport errors

class UnknownDirective(CourierError):
	""" Relay sent a frame with an unsupported directive """

class FramingError(CourierError):
	""" Relay sent data that can't be split into frames """
