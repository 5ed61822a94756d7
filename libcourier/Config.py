import configparser
from os.path import join   as path_join
from os.path import exists as path_exists
from os.path import expanduser
import logging

from libcourier.crypto import DEFAULT_KEY_SIZE, MIN_KEY_SIZE

LOG = logging.getLogger(__name__)

"""\
Basic configs, read from ~/.courier/config.txt

	[default]
	loglevel = info
	logfile = PATH
	logformat = FORMAT
	recv_timeout = SECONDS
	key_size = BITS

	[relay]
	address = ADDRESS
	port = PORT
	hostname = STRING
	certificate = PATH

If no certificate is configured, the relay connection is
plain TCP.
"""

class Config:
	def __init__(self, basedir=None):

		if not basedir:
			basedir = path_join(expanduser('~'),
					'.courier')

		self.basedir      = basedir
		self.config_file  = path_join(self.basedir, "config.txt")

		# [default]
		self.loglevel     = logging.INFO
		self.logformat    = "%(asctime)s  %(levelname)s  "\
				    "%(name)s  %(message)s"
		self.logfile      = path_join(self.basedir, 'log.txt')
		self.recv_timeout = 1.0
		self.key_size     = DEFAULT_KEY_SIZE

		# [relay]
		self.relay_address  = "127.0.0.1"
		self.relay_hostname = None
		self.relay_port     = 8443
		self.relay_certfile = None


	def load(self):
		"""\
		Read config file "basedir/config.txt".
		A missing config file leaves all defaults untouched.

		Return:
		  True if config file was read, else False
		Raises:
		  ValueError: If an option has an invalid value
		"""
		if not path_exists(self.config_file):
			LOG.debug("No config file at " + self.config_file)
			return False

		LOG.debug("Loading configs from " + self.config_file)
		conf = configparser.ConfigParser(interpolation=None)
		try:
			conf.read(self.config_file)
		except configparser.Error as e:
			raise ValueError("Config.load: " + str(e)) from e

		# [default]
		self.loglevel = self.loglevel_string_to_level(
					conf.get('default', 'loglevel',
						fallback='info'))
		self.logfile  = conf.get('default', 'logfile',
				fallback=self.logfile)
		self.logformat = conf.get('default', 'logformat',
				fallback=self.logformat)
		self.recv_timeout = self.__get_number(conf.getfloat,
				'default', 'recv_timeout', self.recv_timeout)
		self.key_size = self.__get_number(conf.getint,
				'default', 'key_size', self.key_size)

		if self.recv_timeout <= 0:
			raise ValueError("Config.load: recv_timeout "\
				"must be greater than 0")
		if self.key_size < MIN_KEY_SIZE:
			raise ValueError("Config.load: key_size must "\
				"be at least {}".format(MIN_KEY_SIZE))

		# [relay]
		self.relay_address = conf.get('relay', 'address',
					fallback=self.relay_address)
		self.relay_port = self.__get_number(conf.getint,
				'relay', 'port', self.relay_port)
		self.relay_hostname = conf.get('relay', 'hostname',
					fallback=self.relay_hostname)
		self.relay_certfile = conf.get('relay', 'certificate',
					fallback=self.relay_certfile)
		return True


	def debug(self):
		LOG.debug("SETTINGS:")
		LOG.debug("[default]")
		LOG.debug("  loglevel       = {}".format(self.loglevel))
		LOG.debug("  logfile        = {}".format(self.logfile))
		LOG.debug("  logformat      = '{}'".format(self.logformat))
		LOG.debug("  recv_timeout   = {}".format(self.recv_timeout))
		LOG.debug("  key_size       = {}".format(self.key_size))
		LOG.debug("[relay]")
		LOG.debug("  address        = {}".format(self.relay_address))
		LOG.debug("  hostname       = {}".format(self.relay_hostname))
		LOG.debug("  port           = {}".format(self.relay_port))
		LOG.debug("  certificate    = {}".format(self.relay_certfile))


	def loglevel_string_to_level(self, loglevel_str):
		"""\
		Return loglevel from string.
		Supported strings: 'ERROR', 'WARNING', 'INFO',
				   'DEBUG'
		Return:
			Loglevel
		Raise:
			ValueError: If unsupported level string
		"""
		levels = {
			'error'   : logging.ERROR,
			'warning' : logging.WARNING,
			'info'    : logging.INFO,
			'debug'   : logging.DEBUG
		}
		levstr = loglevel_str.lower()
		if levstr not in levels:
			raise ValueError("Invalid loglevel string '{}'"\
				.format(loglevel_str))
		else:
			return levels[levstr]


	def __get_number(self, getter, section, option, fallback):
		try:
			return getter(section, option, fallback=fallback)
		except ValueError as e:
			raise ValueError("Config.load: invalid value for "\
				"[{}] {}".format(section, option)) from e
