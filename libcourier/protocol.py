from libcourier.errors import FramingError, EncodingError

"""\
Frames exchanged with the relay are line based. Each frame
is a directive line followed by a single payload line:

  DIRECTIVE '\\n' PAYLOAD '\\n'

Payloads are compact json and never contain a raw newline.

Client -> relay

  send     json(EncryptedMessage)

Relay -> client

  message  json(EncryptedMessage)
  users    json([USERID, ...])

A single recv() might return half a frame or several frames
at once, so all received bytes are passed through a
LineFramer which only hands out complete frames.

"""

class Proto:
	# Frame directives
	D_SEND    = 'send'
	D_MESSAGE = 'message'
	D_USERS   = 'users'

	SEPARATOR = b'\n'

	# Max size of a single line (bytes). A 4096 bit message
	# is ~1.5kB of json, everything above this is garbage.
	MAX_LINE_SIZE = 0x100000


	@staticmethod
	def pack_frame(directive, payload):
		"""\
		Create a frame.
		Args:
		  directive: One of the directives D_*
		  payload:   Payload string (single line)
		Return:
		  Frame (bytes)
		Raises:
		  FramingError: If directive or payload contain
				a line separator
		"""
		if '\n' in directive or '\n' in payload:
			raise FramingError("frame parts must not "\
				"contain newlines")
		return (directive + '\n' + payload + '\n').encode('utf-8')



class LineFramer:
	"""\
	Incremental frame decoder with internal byte buffer.

	Usage:
	  framer = LineFramer()
	  for directive,payload in framer.feed(data):
	      ...
	"""

	def __init__(self, max_line_size=Proto.MAX_LINE_SIZE):
		self.buf = b''
		self.max_line_size = max_line_size
		self.directive = None	# Directive waiting for payload


	def feed(self, data):
		"""\
		Add received bytes.
		Return:
		  List with all completed (directive,payload) frames
		Raises:
		  FramingError:  Line exceeds max_line_size
		  EncodingError: Line is not valid utf-8
		"""
		self.buf += data
		frames = []

		while True:
			i = self.buf.find(Proto.SEPARATOR)
			if i < 0:
				break
			line = self.buf[:i]
			self.buf = self.buf[i+1:]
			self.__check_size(len(line))

			try:
				line = line.decode('utf-8').rstrip('\r')
			except UnicodeDecodeError as e:
				raise EncodingError("frame line is not "\
					"utf-8: "+str(e)) from e

			if self.directive is None:
				# Empty lines between frames are keepalives
				if line.strip():
					self.directive = line.strip()
			else:
				frames.append((self.directive, line))
				self.directive = None

		self.__check_size(len(self.buf))
		return frames


	def pending(self):
		""" Number of buffered bytes not yet part of a frame """
		return len(self.buf)


	def __check_size(self, n):
		if n > self.max_line_size:
			raise FramingError("frame line exceeds {} bytes"\
				.format(self.max_line_size))
