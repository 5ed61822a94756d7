from os import makedirs as os_makedirs
from os.path import dirname as path_dirname
import logging

from libcourier.Config import Config
from libcourier.User import User, LockedUser
from libcourier.Friend import Friend
from libcourier.RelayConnection import RelayConnection
from libcourier.errors import CourierError

"""\
Foreground side of a courier client.

  client = CourierClient()
  client.load()
  client.create_user("alice")
  print(client.share_string())	# Hand this to your friends

  friend = client.add_friend(bobs_share_string)
  client.connect(on_message=print_message)
  client.send(friend.id, "hello")
  ...
  client.close()

config-file (~/.courier/config.txt), see Config.py

"""

LOG = logging.getLogger()

class CourierClient:

	def __init__(self, basedir=None):
		"""
		Create a courier client.
		"""
		self.conf       = Config(basedir)  # Base configs
		self.user       = None	# LockedUser
		self.relay      = None	# RelayConnection
		self.loghandler = None	# Logfile handler


	def load(self):
		"""\
		Read configs and setup the root logger.

		NOTE: Call this before running any other functions.

		Raises:
		  ValueError: If config file is invalid
		  OSError:    If failed to open logfile
		"""
		self.conf.load()

		if self.loghandler:
			LOG.removeHandler(self.loghandler)
			self.loghandler.close()

		logdir = path_dirname(self.conf.logfile)
		if logdir:
			os_makedirs(logdir, exist_ok=True)

		fh = logging.FileHandler(self.conf.logfile, mode='w')
		fh.setLevel(self.conf.loglevel)

		formatter = logging.Formatter(self.conf.logformat,
				datefmt="%H:%M:%S")
		fh.setFormatter(formatter)

		LOG.setLevel(self.conf.loglevel)
		LOG.addHandler(fh)
		self.loghandler = fh

		self.conf.debug()


	def create_user(self, nickname):
		"""\
		Create a new user with fresh keys.
		Return:
		  User
		"""
		user = User(nickname, self.conf.key_size)
		self.user = LockedUser(user)
		return user


	def share_string(self):
		self.__check_user()
		with self.user as user:
			return user.share_string()


	def add_friend(self, friend_string):
		"""\
		Add friend from a share string.
		Return:
		  Friend
		Raises:
		  EncodingError, InvalidFriendString,
		  CryptoBackendError, DuplicateFriend
		"""
		self.__check_user()
		friend = Friend.from_string(friend_string)
		self.user.add_friend(friend)
		return friend


	def connect(self, conn=None, on_message=None,
			on_users=None, on_error=None):
		"""\
		Connect to the relay and start the background
		connection.
		Args:
		  conn: Already connected socket (optional)
		Raises:
		  OSError
		  CourierError: If no user was created
		"""
		self.__check_user()
		self.relay = RelayConnection(self.user, self.conf,
				on_message=on_message,
				on_users=on_users,
				on_error=on_error)
		self.relay.start(conn)


	def send(self, friend_id, text):
		"""\
		Encrypt message for friend and queue it for sending.
		Return:
		  EncryptedMessage
		Raises:
		  NoSuchFriend, MessageTooLong
		  CourierError:    If no user was created
		  ConnectionError: If not connected
		"""
		self.__check_user()
		if not self.relay:
			raise ConnectionError("not connected, call "\
				"connect() first")
		enc_msg = self.user.create_message(friend_id, text)
		self.relay.send_message(enc_msg)
		return enc_msg


	def close(self):
		"""\
		Flush pending messages and close the relay
		connection.
		Raises:
		  The error that terminated the connection (if any)
		"""
		if self.relay:
			relay = self.relay
			self.relay = None
			relay.stop()


	def __check_user(self):
		"""\
		Raises CourierError if no user is setup.
		"""
		if not self.user:
			raise CourierError("no user, call "\
				"create_user() first")
