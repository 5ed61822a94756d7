"""\
Tests for Config and the CourierClient facade.
"""

import json
import logging
import pytest

from libcourier.Config import Config
from libcourier.CourierClient import CourierClient
from libcourier.User import User
from libcourier.Friend import Friend
from libcourier.Message import EncryptedMessage
from libcourier.protocol import Proto, LineFramer
from libcourier.errors import DuplicateFriend, CourierError


def write_config(basedir, text):
	path = basedir / "config.txt"
	path.write_text(text)
	return path


def test_defaults_without_config_file(tmp_path):
	conf = Config(str(tmp_path))
	assert conf.load() is False
	assert conf.loglevel == logging.INFO
	assert conf.relay_port == 8443
	assert conf.relay_certfile is None
	assert conf.key_size == 4096
	assert conf.logfile == str(tmp_path / "log.txt")


def test_load_config(tmp_path):
	write_config(tmp_path,
		"[default]\n"
		"loglevel = debug\n"
		"recv_timeout = 0.5\n"
		"key_size = 2048\n"
		"[relay]\n"
		"address = relay.example.org\n"
		"port = 9000\n"
		"hostname = relay\n"
		"certificate = /tmp/cert.pem\n")
	conf = Config(str(tmp_path))
	assert conf.load() is True
	assert conf.loglevel == logging.DEBUG
	assert conf.recv_timeout == 0.5
	assert conf.key_size == 2048
	assert conf.relay_address == "relay.example.org"
	assert conf.relay_port == 9000
	assert conf.relay_hostname == "relay"
	assert conf.relay_certfile == "/tmp/cert.pem"


@pytest.mark.parametrize("text", [
	"[default]\nloglevel = loud\n",
	"[default]\nrecv_timeout = soon\n",
	"[default]\nrecv_timeout = 0\n",
	"[default]\nkey_size = 512\n",
	"[relay]\nport = http\n",
	"not an ini file",
])
def test_invalid_config(tmp_path, text):
	write_config(tmp_path, text)
	with pytest.raises(ValueError):
		Config(str(tmp_path)).load()


@pytest.fixture
def client(tmp_path):
	write_config(tmp_path,
		"[default]\nloglevel = debug\n"
		"recv_timeout = 0.05\nkey_size = 2048\n")
	cli = CourierClient(str(tmp_path))
	cli.load()
	yield cli
	logging.getLogger().removeHandler(cli.loghandler)
	cli.loghandler.close()


def test_client_send(client, tmp_path, sockpair):
	sock, relay = sockpair
	user = client.create_user("alice")
	assert user.enc_key.key_size == 2048

	bob = User("bob", 2048)
	friend = client.add_friend(bob.share_string())
	assert friend.id == bob.id
	with pytest.raises(DuplicateFriend):
		client.add_friend(bob.share_string())

	client.connect(sock)
	enc_msg = client.send(bob.id, "hi bob")

	framer = LineFramer()
	frames = []
	while not frames:
		frames = framer.feed(relay.recv(4096))
	directive, payload = frames[0]
	assert directive == Proto.D_SEND
	assert json.loads(payload)['id'] == enc_msg.id

	bob.add_friend(Friend.from_string(client.share_string()))
	client.close()

	msg = bob.receive_message(EncryptedMessage.from_json(payload))
	assert msg.content == "hi bob"

	assert (tmp_path / "log.txt").exists()


def test_client_without_user(client, sockpair):
	sock, relay = sockpair
	bob = User("bob", 2048)

	with pytest.raises(CourierError):
		client.share_string()
	with pytest.raises(CourierError):
		client.add_friend(bob.share_string())
	with pytest.raises(CourierError):
		client.connect(sock)
	with pytest.raises(CourierError):
		client.send(bob.id, "hi")
	assert client.relay is None


def test_client_send_before_connect(client):
	client.create_user("alice")
	bob = User("bob", 2048)
	client.add_friend(bob.share_string())

	with pytest.raises(ConnectionError):
		client.send(bob.id, "hi bob")
	client.close()
