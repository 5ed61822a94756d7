"""\
Pytest fixtures for libcourier tests.

All keys are 2048 bit to keep key generation fast.
"""

import socket
import pytest

from libcourier.crypto import KeyPair, Mode
from libcourier.Config import Config
from libcourier.User import User

TEST_KEY_SIZE = 2048


@pytest.fixture(scope="session")
def enc_key():
	""" Private encryption key (shared, keys are immutable) """
	return KeyPair.generate(Mode.ENCRYPT_DECRYPT, TEST_KEY_SIZE)


@pytest.fixture(scope="session")
def sig_key():
	""" Private signing key (shared) """
	return KeyPair.generate(Mode.SIGN_VERIFY, TEST_KEY_SIZE)


@pytest.fixture
def alice():
	return User("alice", TEST_KEY_SIZE)


@pytest.fixture
def bob():
	return User("bob", TEST_KEY_SIZE)


@pytest.fixture
def friends(alice, bob):
	"""\
	Alice and bob, both knowing each other.
	"""
	alice.add_friend(bob.to_friend())
	bob.add_friend(alice.to_friend())
	return alice, bob


@pytest.fixture
def conf(tmp_path):
	c = Config(str(tmp_path))
	c.recv_timeout = 0.05
	c.key_size = TEST_KEY_SIZE
	return c


@pytest.fixture
def sockpair():
	"""\
	Connected sockets (client, relay). The relay end
	stands in for the relay server.
	"""
	client, relay = socket.socketpair()
	relay.settimeout(5)
	yield client, relay
	for s in (client, relay):
		try:	s.close()
		except OSError: pass
