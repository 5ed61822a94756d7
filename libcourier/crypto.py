"""\

This file contains all crypto functions/classes used
by courier.

A courier user holds two RSA keys, one used for en/decryption
and one used for signing. Each key is wrapped by a KeyPair which
only exposes the operations its mode permits:

	Mode.ENCRYPT          encrypt                 (public only)
	Mode.ENCRYPT_DECRYPT  encrypt, decrypt        (private)
	Mode.VERIFY           verify                  (public only)
	Mode.SIGN_VERIFY      sign, verify            (private)

Each mode is its own KeyPair subclass, public-only subclasses do
not even have an attribute for private key material. The only
way from a private key to a public one is to_public()/to_verify(),
there is no way back.

"""

from os import urandom as os_urandom
from base64 import b64encode, b64decode
import binascii
import logging

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric import padding as rsa_padding
from cryptography.hazmat.primitives.asymmetric.utils import Prehashed
from cryptography.hazmat.primitives.serialization import load_pem_public_key
from cryptography.hazmat.primitives import serialization, hashes

from libcourier.errors import ModeError, CryptoBackendError, MessageTooLong
from libcourier.errors import EncodingError, VerifyError

LOG = logging.getLogger(__name__)


DEFAULT_KEY_SIZE = 4096
MIN_KEY_SIZE     = 2048

# Overhead of PKCS#1 v1.5 encryption padding (bytes)
PKCS1_OVERHEAD = 11


class Mode:
	ENCRYPT         = 1	# EncryptOnly
	ENCRYPT_DECRYPT = 2	# EncryptAndDecrypt
	VERIFY          = 3	# VerifyOnly
	SIGN_VERIFY     = 4	# SignAndVerify

	PRIVATE_MODES = (ENCRYPT_DECRYPT, SIGN_VERIFY)

	@staticmethod
	def to_str(mode):
		names = {
			Mode.ENCRYPT         : "encrypt",
			Mode.ENCRYPT_DECRYPT : "encrypt-decrypt",
			Mode.VERIFY          : "verify",
			Mode.SIGN_VERIFY     : "sign-verify"
		}
		return names.get(mode, "unknown")


class KeyPair:
	"""\
	Base class of all key variants. Every gated operation
	raises a ModeError here, subclasses override the ones
	their mode allows.
	"""
	mode = None

	def __init__(self, public):
		self.public = public	# RSAPublicKey


	@staticmethod
	def generate(mode, key_size=DEFAULT_KEY_SIZE):
		"""\
		Generate a new RSA key for one of the private modes.
		Args:
		  mode:     Mode.ENCRYPT_DECRYPT or Mode.SIGN_VERIFY
		  key_size: RSA key size in bits
		Return:
		  DecryptKey or SignKey
		Raises:
		  ModeError: If mode is a public-only mode
		"""
		if mode not in Mode.PRIVATE_MODES:
			raise ModeError("cannot generate a public only "\
				"key ({})".format(Mode.to_str(mode)))
		if key_size < MIN_KEY_SIZE:
			raise ValueError("RSA key size must be at "\
				"least {} bit".format(MIN_KEY_SIZE))

		LOG.debug("generating {} bit {} key ..."\
			.format(key_size, Mode.to_str(mode)))
		key = rsa.generate_private_key(
				public_exponent=65537,
				key_size=key_size)

		if mode == Mode.ENCRYPT_DECRYPT:
			return DecryptKey(key)
		return SignKey(key)


	@staticmethod
	def from_pub_pem(text, mode):
		"""\
		Load a public-only key from the string created by
		pub_key_pem().
		Args:
		  text: base64(PEM)
		  mode: Mode.ENCRYPT or Mode.VERIFY
		Return:
		  EncryptKey or VerifyKey
		Raises:
		  ModeError, EncodingError, CryptoBackendError
		"""
		if mode == Mode.ENCRYPT_DECRYPT:
			raise ModeError("cannot load only public key "\
					"for decrypt mode")
		elif mode == Mode.SIGN_VERIFY:
			raise ModeError("cannot load only public key "\
					"for sign mode")
		elif mode not in (Mode.ENCRYPT, Mode.VERIFY):
			raise ModeError("invalid key mode {}".format(mode))

		pem = b64decode_nopad(text)
		try:
			key = load_pem_public_key(data=pem)
		except (ValueError, UnsupportedAlgorithm) as e:
			raise CryptoBackendError("invalid public "\
				"key: {}".format(e)) from e

		if not isinstance(key, rsa.RSAPublicKey):
			raise CryptoBackendError("public key is "\
				"not an RSA key")

		if mode == Mode.ENCRYPT:
			return EncryptKey(key)
		return VerifyKey(key)


	def encrypt(self, plaintext):
		raise ModeError("cannot encrypt with non encrypt mode key")

	def decrypt(self, ciphertext):
		raise ModeError("cannot decrypt with non decrypt mode key")

	def sign(self, message):
		raise ModeError("cannot sign with non signing mode key")

	def verify(self, message, signature):
		raise ModeError("cannot verify with non verify mode key")

	def to_public(self):
		raise ModeError("cannot get encrypt key from non "\
				"encrypt mode key")

	def to_verify(self):
		raise ModeError("cannot get verify key from non "\
				"verify mode key")


	@property
	def key_size(self):
		return self.public.key_size


	def max_plaintext_size(self):
		""" Max number of bytes encrypt() accepts """
		return self.key_size // 8 - PKCS1_OVERHEAD


	def pub_key_pem(self):
		"""\
		Export the public key.
		Return:
		  base64(PEM) without base64 padding
		"""
		pem = self.public.public_bytes(
			encoding=serialization.Encoding.PEM,
			format=serialization.PublicFormat.SubjectPublicKeyInfo)
		return b64encode_nopad(pem)


	def fingerprint(self):
		"""\
		Get sha256 hash (hex) of the DER encoded public key.
		"""
		der = self.public.public_bytes(
			encoding=serialization.Encoding.DER,
			format=serialization.PublicFormat.SubjectPublicKeyInfo)
		return hash_sha256(der, return_hex=True)


	def __repr__(self):
		return "<{} {} bit {}>".format(type(self).__name__,
				self.key_size, self.fingerprint()[:16])


	# Shared implementations, only reachable through the
	# subclasses granting the capability.

	def _encrypt(self, plaintext):
		data = plaintext.encode('utf-8')
		if len(data) > self.max_plaintext_size():
			raise MessageTooLong("plaintext has {} bytes, a {} "\
				"bit key holds at most {}".format(len(data),
				self.key_size, self.max_plaintext_size()))
		try:
			enc = self.public.encrypt(data,
				rsa_padding.PKCS1v15())
		except ValueError as e:
			raise CryptoBackendError("encrypt: "+str(e)) from e
		return b64encode_nopad(enc)


	def _verify(self, message, signature):
		sig = b64decode_nopad(signature)
		digest = hash_sha256(message.encode('utf-8'))
		try:
			signed = self.public.recover_data_from_signature(
				sig, rsa_padding.PKCS1v15(), hashes.SHA256())
		except (InvalidSignature, ValueError) as e:
			raise VerifyError("failed to verify message") from e

		if signed.hex() != digest.hex():
			raise VerifyError("failed to verify message")



class EncryptKey(KeyPair):
	""" Public encryption key (Mode.ENCRYPT) """
	mode = Mode.ENCRYPT

	def encrypt(self, plaintext):
		"""\
		Encrypt given text using the public RSA key.
		Args:
		  plaintext: Text to encrypt (str)
		Return:
		  base64 encoded ciphertext (str)
		Raises:
		  MessageTooLong, CryptoBackendError
		"""
		return self._encrypt(plaintext)

	def to_public(self):
		return EncryptKey(self.public)



class DecryptKey(KeyPair):
	""" Private encryption key (Mode.ENCRYPT_DECRYPT) """
	mode = Mode.ENCRYPT_DECRYPT

	def __init__(self, private):
		super().__init__(private.public_key())
		self.private = private	# RSAPrivateKey


	def encrypt(self, plaintext):
		return self._encrypt(plaintext)


	def decrypt(self, ciphertext):
		"""\
		Decrypt given base64 ciphertext using the private
		RSA key. The result is passed through
		strip_legacy_padding().
		Args:
		  ciphertext: base64 ciphertext (str)
		Return:
		  Decrypted text (str)
		Raises:
		  EncodingError, CryptoBackendError
		"""
		enc = b64decode_nopad(ciphertext)
		try:
			dec = self.private.decrypt(enc,
				rsa_padding.PKCS1v15())
		except ValueError as e:
			raise CryptoBackendError("decrypt: "+str(e)) from e
		return strip_legacy_padding(dec)


	def to_public(self):
		return EncryptKey(self.public)



class VerifyKey(KeyPair):
	""" Public signing key (Mode.VERIFY) """
	mode = Mode.VERIFY

	def verify(self, message, signature):
		"""\
		Verify signature of given message.
		Args:
		  message:   The signed text (str)
		  signature: base64 signature (str)
		Raises:
		  VerifyError:   Signature is invalid
		  EncodingError: Signature is not base64
		"""
		self._verify(message, signature)

	def to_verify(self):
		return VerifyKey(self.public)



class SignKey(KeyPair):
	""" Private signing key (Mode.SIGN_VERIFY) """
	mode = Mode.SIGN_VERIFY

	def __init__(self, private):
		super().__init__(private.public_key())
		self.private = private


	def sign(self, message):
		"""\
		Sign the sha256 digest of given text.
		Args:
		  message: Text to sign (str)
		Return:
		  base64 signature (str)
		"""
		digest = hash_sha256(message.encode('utf-8'))
		try:
			sig = self.private.sign(digest,
				rsa_padding.PKCS1v15(),
				Prehashed(hashes.SHA256()))
		except ValueError as e:
			raise CryptoBackendError("sign: "+str(e)) from e
		return b64encode_nopad(sig)


	def verify(self, message, signature):
		self._verify(message, signature)

	def to_verify(self):
		return VerifyKey(self.public)


########################################

def strip_legacy_padding(buf):
	"""\
	Post-decrypt cleanup kept for compatibility with older
	peers: strips all trailing NUL bytes, decodes utf-8 and
	trims surrounding whitespace.

	NOTE: Plaintexts that end with NUL bytes or whitespace
	      do NOT survive an encrypt/decrypt round trip.
	Raises:
	  EncodingError: If buf is no valid utf-8
	"""
	end = len(buf)
	while end > 0 and buf[end-1] == 0:
		end -= 1
	try:
		text = buf[:end].decode('utf-8')
	except UnicodeDecodeError as e:
		raise EncodingError("decrypted data is not "\
			"utf-8: "+str(e)) from e
	return text.strip()


def b64encode_nopad(data):
	"""\
	Base64 encode given bytes and strip the padding.
	"""
	return b64encode(data).decode('ascii').rstrip('=')


def b64decode_nopad(text):
	"""\
	Decode base64 string with or without padding.
	Raises:
	  EncodingError
	"""
	try:
		if isinstance(text, str):
			text = text.encode('ascii')
		text = text.rstrip(b'=')
		return b64decode(text + b'=' * (-len(text) % 4),
				validate=True)
	except (binascii.Error, ValueError, TypeError) as e:
		raise EncodingError("invalid base64: "+str(e)) from e


def random_buffer(length, return_hex=False):
	"""\
	Returns random buffer with given length.
	"""
	if return_hex:
		return os_urandom(int(length/2)).hex()
	else:	return os_urandom(length)


def hash_sha256(data, return_hex=False):
	"""\
	Hash data with sha256
	Args:
	  data:  Data to hash
	  return_hex: Return hash as hex?
	Return:
	  Sha256 hash
	"""
	h = hashes.Hash(hashes.SHA256())
	h.update(data)
	dig = h.finalize()
	return dig.hex() if return_hex else dig
