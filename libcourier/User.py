from time import time as time_now
from threading import Lock
import logging

from libcourier.crypto import KeyPair, Mode, DEFAULT_KEY_SIZE
from libcourier.crypto import random_buffer
from libcourier.Friend import Friend
from libcourier.Message import Message, EncryptedMessage
from libcourier.errors import DuplicateFriend, NoSuchFriend
from libcourier.errors import UnknownMessage, VerifyError

LOG = logging.getLogger(__name__)

"""\
The User class holds the local identity: a random userid,
a nickname, both private keys and all friends.

Sending a message to a friend:

  1. Encrypt text with the friend's public encryption key
  2. Sign the ciphertext with our own signing key
  3. Stamp message id, sender/receiver ids and time

Receiving a message from a friend:

  1. Check that the message is addressed to us
  2. Lookup the sender within our friends
  3. Verify the signature with the sender's public key
  4. Decrypt ciphertext with our private encryption key
  5. Append the message to the friend's history

A message is never decrypted before its signature has been
verified.

"""

USERID_SIZE = 32	# Userid size (hex chars)
MSGID_SIZE  = 32	# Message id size (hex chars)


class User:

	def __init__(self, nickname, key_size=DEFAULT_KEY_SIZE):
		"""\
		Create new user with fresh keys.
		Args:
		  nickname: Display name
		  key_size: RSA key size (bits)
		"""
		self.id       = random_buffer(USERID_SIZE, True)
		self.nickname = nickname
		self.enc_key  = KeyPair.generate(Mode.ENCRYPT_DECRYPT,
						key_size)
		self.sig_key  = KeyPair.generate(Mode.SIGN_VERIFY,
						key_size)
		self.friends  = {}	# Key=userid, Value=Friend

		LOG.info("Created user '{}' ({})".format(
			nickname, self.id))


	def add_friend(self, friend):
		"""\
		Add friend to this user.
		Raises:
		  DuplicateFriend: If friend.id is already known
		"""
		if friend.id in self.friends:
			raise DuplicateFriend("duplicate friend {}"\
				.format(friend.id))
		self.friends[friend.id] = friend
		LOG.info("Added friend {} ({})".format(
			friend.nickname, friend.id))


	def get_friend(self, userid):
		"""\
		Get friend by userid.
		Returns None if friend doesn't exist.
		"""
		return self.friends.get(userid)


	def get_friend_by_name(self, nickname):
		"""\
		Get friend by nickname.
		Returns None if friend doesn't exist.
		"""
		for friend in self.friends.values():
			if friend.nickname == nickname:
				return friend
		return None


	def get_friend_ids(self):
		return {id: f.nickname for id,f in self.friends.items()}


	def create_message(self, friend_id, text):
		"""\
		Create a signed and encrypted message.

		Args:
		  friend_id: Userid of receiving friend
		  text:      Message text
		Return:
		  EncryptedMessage
		Raises:
		  NoSuchFriend, MessageTooLong, CryptoBackendError
		"""
		friend = self.friends.get(friend_id)
		if not friend:
			raise NoSuchFriend("no friend with id {}"\
				.format(friend_id))

		enc = friend.encrypt(text)
		sig = self.sig_key.sign(enc)

		return EncryptedMessage(
			id=random_buffer(MSGID_SIZE, True),
			source_id=self.id,
			target_id=friend.id,
			enc_content=enc,
			created_at=int(time_now()),
			sig=sig)


	def receive_message(self, enc_msg):
		"""\
		Verify and decrypt received message and add it
		to the sender's message history.

		Args:
		  enc_msg: EncryptedMessage
		Return:
		  Message
		Raises:
		  UnknownMessage: Message is not addressed to us
		  NoSuchFriend:   Sender is not our friend
		  VerifyError:    Invalid signature
		  EncodingError, CryptoBackendError
		"""
		if enc_msg.target_id != self.id:
			raise UnknownMessage("received message for "\
				"another id ({})".format(enc_msg.target_id))

		friend = self.friends.get(enc_msg.source_id)
		if not friend:
			raise NoSuchFriend("no friend with id {}"\
				.format(enc_msg.source_id))

		try:
			friend.verify(enc_msg)
		except VerifyError:
			LOG.warning("Invalid signature on message {} "\
				"from {}".format(enc_msg.id, friend.id))
			raise

		text = self.enc_key.decrypt(enc_msg.enc_content)

		msg = Message(
			id=enc_msg.id,
			source_id=enc_msg.source_id,
			target_id=enc_msg.target_id,
			content=text,
			created_at=enc_msg.created_at)

		friend.add_message(msg)
		return msg


	def to_friend(self):
		"""\
		Get the public part of this user as Friend.
		"""
		return Friend(self.id, self.nickname,
			self.enc_key.to_public(),
			self.sig_key.to_verify())


	def share_string(self):
		"""\
		Get the string a peer needs to add us as friend.
		"""
		return self.to_friend().to_string()


	def __repr__(self):
		return "<User {} ({}), {} friends>".format(
			self.nickname, self.id, len(self.friends))



class LockedUser:
	"""\
	A User shared between the foreground and the relay
	connection thread. Every access holds the lock for a
	single operation.

	Usage:
	  with locked as user:
	      user.get_friend(...)
	"""

	def __init__(self, user):
		self.user = user
		self.lock = Lock()

	def __enter__(self):
		self.lock.acquire()
		return self.user

	def __exit__(self, exc_type, exc_value, tb):
		self.lock.release()
		return False

	def add_friend(self, friend):
		with self as user:
			user.add_friend(friend)

	def create_message(self, friend_id, text):
		with self as user:
			return user.create_message(friend_id, text)

	def receive_message(self, enc_msg):
		with self as user:
			return user.receive_message(enc_msg)
