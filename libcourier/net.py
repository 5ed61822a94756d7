import socket
from ssl import SSLContext, PROTOCOL_TLS_CLIENT
import select
import logging
from threading import Lock

from libcourier.protocol import Proto

LOG = logging.getLogger(__name__)

class NetClient:
	"""\
	TCP client talking to the relay. If a certificate is
	given, the connection is wrapped with TLS.
	"""
	def __init__(self, host='127.0.0.1', port=8443,
			hostname=None, certpath=None):
		self.host     = host
		self.port     = port
		self.hostname = hostname
		self.certpath = certpath

		self.conn     = None
		self.ssl      = None
		self.is_ssl   = certpath != None
		self.wlock    = Lock() # Write lock


	def set_conn(self, conn, address=None):
		"""\
		Use an already connected socket.
		"""
		self.conn = conn
		if address:
			self.host = address[0]
			self.port = address[1]

	def tostr(self):
		return str(self.host) + ":" + str(self.port)


	def connect(self, timeout_sec=None):
		"""\
		Connect to relay.
		Raises:
		  OSError, ssl.SSLError
		"""
		if self.conn:
			return
		try:
			LOG.info("connecting to {}:{} ..."\
				.format(self.host, self.port))
			conn = socket.create_connection(
				(self.host,self.port),
				timeout=timeout_sec)
			conn.settimeout(None)

			if self.is_ssl:
				self.ssl = SSLContext(PROTOCOL_TLS_CLIENT)
				self.ssl.load_verify_locations(self.certpath)
				self.conn = self.ssl.wrap_socket(conn,
					server_hostname=self.hostname or self.host)
			else:	self.conn = conn

		except Exception as e:
			LOG.error("connect: " + str(e))
			raise


	def send(self, data):
		"""\
		Send all data.
		"""
		with self.wlock:
			self.conn.sendall(data)


	def send_frame(self, directive, payload):
		"""\
		Send a single frame.
		Args:
		  directive: Frame directive (Proto.D_*)
		  payload:   Payload string
		"""
		self.send(Proto.pack_frame(directive, payload))


	def wait(self, timeout_sec, wakeup=None):
		"""\
		Wait until data can be received.
		Args:
		  timeout_sec: Timeout in seconds
		  wakeup:      Object with fileno(), which ends
			       the wait when readable (optional)
		Return:
		  True if the connection is readable
		"""
		return can_read(self.conn, timeout_sec, wakeup)


	def recv(self, max_bytes=4096):
		"""\
		Receive data. Blocks if nothing is available,
		call wait() first.
		Return:
		  Data:  Received data
		  b'':   Connection closed by peer
		"""
		return self.conn.recv(max_bytes)


	def close(self):
		"""\
		Close connection.
		"""
		if self.conn:
			try:
				self.conn.close()
			finally:
				self.conn = None



def can_read(conn, timeout_sec, wakeup=None):
	"""\
	Check wheather there is data awailable at the given
	connection before timeout exceeds.
	Args:
	  conn:        Connection
	  timeout_sec: Timeout in seconds
	  wakeup:      Second readable object, stops waiting
		       without conn being readable (optional)
	Return:
	  True:  Data is awailable to receive
	  False: Timeout exceeded or woken up
	Raises:
	  if select() failed
	"""
	# TLS sockets might hold already decrypted bytes
	if hasattr(conn, 'pending') and conn.pending():
		return True

	rlist = [conn] if wakeup is None else [conn, wakeup]
	ready = select.select(rlist, [], [], timeout_sec)
	return conn in ready[0]
