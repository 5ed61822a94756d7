import socket
import json
import logging
from collections import deque
from threading import Thread, Lock

from libcourier.protocol import Proto, LineFramer
from libcourier.net import NetClient
from libcourier.Config import Config
from libcourier.Message import EncryptedMessage
from libcourier.errors import CourierError, EncodingError, UnknownDirective

LOG = logging.getLogger(__name__)

"""\
Background connection to the relay.

A RelayConnection owns the socket to the relay and runs a
single worker thread which

  - sends all messages put into the Outbox
  - receives frames from the relay and passes received
    messages to User.receive_message()

The worker sleeps in select() until either the socket is
readable, a message was queued or recv_timeout exceeded.

  CONNECTING --start()--> ACTIVE --+--> TERMINATED
                                   |
      Outbox closed (stop()) ------+  clean, error = None
      I/O error, relay closed,     |
      framing error, unknown  -----+  error is set and
      directive                       raised by join()

Messages which fail to verify/decrypt (VerifyError,
NoSuchFriend, UnknownMessage, ...) don't stop the worker,
they are logged and passed to the on_error callback.

"""

class Outbox:
	"""\
	Queue of outgoing EncryptedMessages. The read end of an
	internal socketpair becomes readable whenever a message
	was put or the outbox was closed, so the outbox can be
	passed to select().
	"""

	def __init__(self):
		self.queue  = deque()
		self.lock   = Lock()
		self.closed = False
		self.rsock, self.wsock = socket.socketpair()
		self.rsock.setblocking(False)
		self.wsock.setblocking(False)


	def fileno(self):
		return self.rsock.fileno()


	def put(self, enc_msg):
		"""\
		Queue message for sending.
		Raises:
		  ConnectionError: If outbox is already closed
		"""
		with self.lock:
			if self.closed:
				raise ConnectionError("outbox is closed")
			self.queue.append(enc_msg)
			self.__wakeup()


	def close(self):
		"""\
		Close the outbox. Already queued messages will
		still be sent, afterwards the worker stops.
		"""
		with self.lock:
			if not self.closed:
				self.closed = True
				self.__wakeup()


	def drain(self):
		"""\
		Get all queued messages without blocking.
		Return:
		  messages, is_closed
		"""
		try:
			while self.rsock.recv(4096):
				pass
		except BlockingIOError:
			pass

		with self.lock:
			msgs = list(self.queue)
			self.queue.clear()
			return msgs, self.closed


	def dispose(self):
		with self.lock:
			self.closed = True
			self.rsock.close()
			self.wsock.close()


	def __wakeup(self):
		try:
			self.wsock.send(b'\0')
		except BlockingIOError:
			# Socket buffer full, worker will wake up anyway
			pass



class RelayConnection:

	CONNECTING = 0
	ACTIVE     = 1
	TERMINATED = 2

	def __init__(self, user, conf=None, on_message=None,
			on_users=None, on_error=None):
		"""\
		Args:
		  user:       LockedUser
		  conf:       Config (relay address, recv_timeout)
		  on_message: Called with each received Message
		  on_users:   Called with the list of online peers
		  on_error:   Called with exceptions of rejected
			      messages
		"""
		self.conf   = conf if conf else Config()
		self.user   = user
		self.conn   = NetClient(
				self.conf.relay_address,
				self.conf.relay_port,
				self.conf.relay_hostname,
				self.conf.relay_certfile)
		self.outbox = Outbox()
		self.framer = LineFramer()
		self.state  = RelayConnection.CONNECTING
		self.error  = None	# Error that stopped the worker
		self.peers  = []	# Userids announced by relay
		self.thread = None

		self.on_message = on_message
		self.on_users   = on_users
		self.on_error   = on_error


	def start(self, conn=None):
		"""\
		Connect to relay and start the worker thread.
		Args:
		  conn: Already connected socket (optional)
		Return:
		  Outbox
		Raises:
		  OSError: If failed to connect
		"""
		try:
			if conn:
				self.conn.set_conn(conn)
			else:
				self.conn.connect(self.conf.recv_timeout)

			# Blocking socket, reads are bounded by wait()
			self.conn.conn.settimeout(None)
		except Exception:
			self.state = RelayConnection.TERMINATED
			self.outbox.dispose()
			raise

		LOG.info("connected to relay " + self.conn.tostr())
		self.state  = RelayConnection.ACTIVE
		self.thread = Thread(target=self.run,
				name="relay-connection",
				daemon=True)
		self.thread.start()
		return self.outbox


	def send_message(self, enc_msg):
		"""\
		Queue EncryptedMessage for sending.
		"""
		self.outbox.put(enc_msg)


	def stop(self, timeout_sec=None):
		"""\
		Send all queued messages, then stop the worker.
		Raises:
		  The error that terminated the worker (if any)
		"""
		self.outbox.close()
		self.join(timeout_sec)


	def join(self, timeout_sec=None):
		"""\
		Wait for worker to terminate.
		Raises:
		  The error that terminated the worker (if any)
		"""
		if self.thread:
			self.thread.join(timeout_sec)
		if self.error:
			raise self.error


	def is_active(self):
		return self.state == RelayConnection.ACTIVE


	def run(self):
		"""\
		Worker mainloop.
		"""
		try:
			self.__loop()
			LOG.info("relay connection closed")
		except Exception as e:
			LOG.error("relay connection terminated: {}"\
				.format(e))
			self.error = e
		finally:
			self.state = RelayConnection.TERMINATED
			self.outbox.dispose()
			self.conn.close()


	def handle_frame(self, directive, payload):
		"""\
		Dispatch a received frame.
		Raises:
		  UnknownDirective
		"""
		LOG.debug("recv frame '{}' ({} byte)".format(
			directive, len(payload)))

		if directive == Proto.D_MESSAGE:
			self.__recv_message(payload)
		elif directive == Proto.D_USERS:
			self.__recv_users(payload)
		else:
			raise UnknownDirective("unknown message directive "\
				"'{}' received".format(directive))


	#-- PRIVATE --------------------------------------------------

	def __loop(self):
		while True:
			readable = self.__wait()

			msgs,closed = self.outbox.drain()
			for enc_msg in msgs:
				self.__send_message(enc_msg)
			if closed:
				return

			if readable:
				self.__recv()


	def __wait(self):
		"""\
		Wait until socket or outbox is readable.
		Return:
		  True if the socket is readable
		"""
		return self.conn.wait(self.conf.recv_timeout, self.outbox)


	def __recv(self):
		data = self.conn.recv(4096)

		if not data:
			raise ConnectionError("connection closed by relay")

		for directive,payload in self.framer.feed(data):
			self.handle_frame(directive, payload)


	def __send_message(self, enc_msg):
		LOG.debug("send message {} to {}".format(
			enc_msg.id, enc_msg.target_id))
		self.conn.send_frame(Proto.D_SEND, enc_msg.to_json())


	def __recv_message(self, payload):
		try:
			enc_msg = EncryptedMessage.from_json(payload)
			msg = self.user.receive_message(enc_msg)
		except CourierError as e:
			self.__reject(e)
			return

		LOG.info("received message {} from {}".format(
			msg.id, msg.source_id))
		if self.on_message:
			self.on_message(msg)


	def __recv_users(self, payload):
		try:
			peers = json.loads(payload)
			if not isinstance(peers, list):
				raise ValueError("expected a list")
		except ValueError as e:
			self.__reject(EncodingError("users: "+str(e)))
			return

		self.peers = peers
		LOG.debug("relay reports {} users".format(len(peers)))
		if self.on_users:
			self.on_users(peers)


	def __reject(self, error):
		LOG.warning("rejected frame: {}: {}".format(
			type(error).__name__, error))
		if self.on_error:
			self.on_error(error)
