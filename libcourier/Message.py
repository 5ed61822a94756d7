import json

from libcourier.errors import EncodingError

"""\
Chat messages.

A Message holds the decrypted text and never leaves the
process. An EncryptedMessage is what gets sent to the relay,
serialized as json:

  {
    'id'          : MESSAGE_ID,
    'source_id'   : SENDER_USERID,
    'target_id'   : RECEIVER_USERID,
    'enc_content' : base64(RSA(TEXT)),
    'created_at'  : EPOCH_SECONDS,
    'sig'         : base64(SIGNATURE(enc_content))
  }

"""

class Message:

	def __init__(self, id, source_id, target_id, content, created_at):
		self.id         = id		# Message id
		self.source_id  = source_id	# Sender userid
		self.target_id  = target_id	# Receiver userid
		self.content    = content	# Decrypted text
		self.created_at = created_at	# Epoch seconds

	def __repr__(self):
		return "<Message {} from={} at={}>".format(
			self.id, self.source_id, self.created_at)



class EncryptedMessage:

	FIELDS = ('id', 'source_id', 'target_id',
		  'enc_content', 'created_at', 'sig')

	def __init__(self, id, source_id, target_id,
			enc_content, created_at, sig):
		self.id          = id
		self.source_id   = source_id
		self.target_id   = target_id
		self.enc_content = enc_content
		self.created_at  = created_at
		self.sig         = sig


	def to_dict(self):
		return {name: getattr(self, name)
			for name in EncryptedMessage.FIELDS}


	def to_json(self):
		"""\
		Get message as compact json string (no newlines).
		"""
		return json.dumps(self.to_dict(), separators=(',', ':'))


	@staticmethod
	def from_dict(d):
		"""\
		Create EncryptedMessage from dictionary.
		Raises:
		  EncodingError: If a field is missing or has
				 the wrong type
		"""
		if not isinstance(d, dict):
			raise EncodingError("encrypted message must "\
				"be a json object")
		for name in EncryptedMessage.FIELDS:
			if name not in d:
				raise EncodingError("encrypted message: "\
					"missing field '{}'".format(name))
			if name == 'created_at':
				# bool is a subclass of int
				if type(d[name]) is not int:
					raise EncodingError("encrypted message: "\
						"created_at must be an integer")
			elif not isinstance(d[name], str):
				raise EncodingError("encrypted message: "\
					"'{}' must be a string".format(name))

		return EncryptedMessage(*[d[name]
				for name in EncryptedMessage.FIELDS])


	@staticmethod
	def from_json(text):
		"""\
		Parse json string to EncryptedMessage.
		Raises:
		  EncodingError
		"""
		try:
			d = json.loads(text)
		except ValueError as e:
			raise EncodingError("encrypted message: "\
				"invalid json, "+str(e)) from e
		return EncryptedMessage.from_dict(d)


	def __repr__(self):
		return "<EncryptedMessage {} {}->{}>".format(
			self.id, self.source_id, self.target_id)
