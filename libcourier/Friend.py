import json
import sys
import logging

from libcourier.crypto import KeyPair, Mode
from libcourier.crypto import b64encode_nopad, b64decode_nopad
from libcourier.errors import EncodingError, InvalidFriendString

LOG = logging.getLogger(__name__)


class Friend:
	"""\
	A friend is another peer within the courier network, of
	whom we know the userid, nickname and both public keys.
	A Friend never holds private key material.

	Friends are exchanged as a single string (see to_string()):

	  base64(json({
	    'id'       : USERID,
	    'nickname' : NICKNAME,
	    'pub_key'  : base64(PEM),	# Public encryption key
	    'ver_key'  : base64(PEM)	# Public signing key
	  }))

	"""

	def __init__(self, id, nickname, enc_key, sig_key):
		self.id       = id		# Friends userid
		self.nickname = nickname	# Friends nickname
		self.enc_key  = enc_key		# EncryptKey
		self.sig_key  = sig_key		# VerifyKey

		# All messages received from this friend.
		# Stored in arrival order, see get_messages().
		self.messages = []


	def encrypt(self, text):
		"""\
		Encrypt text for this friend.
		"""
		return self.enc_key.encrypt(text)


	def verify(self, enc_msg):
		"""\
		Verify the signature of an EncryptedMessage sent
		by this friend. The signature covers the encrypted
		content.
		Raises:
		  VerifyError
		"""
		self.sig_key.verify(enc_msg.enc_content, enc_msg.sig)


	def add_message(self, message):
		self.messages.append(message)


	def get_messages(self):
		"""\
		Get a copy of the message history sorted by creation
		time. Messages with same timestamp keep their arrival
		order.
		"""
		return sorted(self.messages, key=lambda m: m.created_at)


	def print_messages(self, out=sys.stdout):
		for msg in self.get_messages():
			out.write("{}|{}: {}\n".format(msg.id,
				msg.created_at, msg.content))


	def to_string(self):
		"""\
		Get the exchange string of this friend.
		"""
		d = {
			'id'       : self.id,
			'nickname' : self.nickname,
			'pub_key'  : self.enc_key.pub_key_pem(),
			'ver_key'  : self.sig_key.pub_key_pem()
		}
		js = json.dumps(d, separators=(',', ':'))
		return b64encode_nopad(js.encode('utf-8'))


	@staticmethod
	def from_string(text):
		"""\
		Create friend from exchange string.
		Args:
		  text: String created by Friend.to_string()
		Return:
		  Friend
		Raises:
		  EncodingError:       Invalid base64/json
		  InvalidFriendString: Missing fields or empty id
		  CryptoBackendError:  Invalid public keys
		"""
		raw = b64decode_nopad(text.strip())
		try:
			d = json.loads(raw)
		except ValueError as e:
			raise EncodingError("friend string: invalid "\
				"json, "+str(e)) from e

		if not isinstance(d, dict):
			raise InvalidFriendString("friend string must "\
				"hold a json object")

		for name in ('id', 'nickname', 'pub_key', 'ver_key'):
			if not isinstance(d.get(name), str):
				raise InvalidFriendString("friend string: "\
					"missing field '{}'".format(name))

		if not d['id']:
			raise InvalidFriendString("id is empty")

		enc_key = KeyPair.from_pub_pem(d['pub_key'], Mode.ENCRYPT)
		sig_key = KeyPair.from_pub_pem(d['ver_key'], Mode.VERIFY)

		LOG.debug("Parsed friend {} ({})".format(
			d['nickname'], d['id']))
		return Friend(d['id'], d['nickname'], enc_key, sig_key)


	def __repr__(self):
		return "<Friend {} ({})>".format(self.nickname, self.id)
