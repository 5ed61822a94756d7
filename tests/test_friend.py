"""\
Tests for Friend and the friend exchange string.
"""

import io
import json
import pytest

from libcourier.crypto import EncryptKey, VerifyKey
from libcourier.crypto import b64encode_nopad, b64decode_nopad
from libcourier.Friend import Friend
from libcourier.Message import Message
from libcourier.errors import EncodingError, InvalidFriendString
from libcourier.errors import CryptoBackendError


def make_string(**fields):
	return b64encode_nopad(json.dumps(fields).encode())


def test_to_friend_is_public_only(alice):
	friend = alice.to_friend()
	assert friend.id == alice.id
	assert friend.nickname == "alice"
	assert isinstance(friend.enc_key, EncryptKey)
	assert isinstance(friend.sig_key, VerifyKey)
	assert not hasattr(friend.enc_key, 'private')
	assert not hasattr(friend.sig_key, 'private')
	assert friend.messages == []


def test_string_roundtrip(alice):
	text = alice.to_friend().to_string()
	assert "=" not in text

	friend = Friend.from_string(text)
	assert friend.id == alice.id
	assert friend.nickname == alice.nickname
	assert friend.enc_key.pub_key_pem() == alice.enc_key.pub_key_pem()
	assert friend.sig_key.pub_key_pem() == alice.sig_key.pub_key_pem()

	# Keys must work against alice's private keys
	assert alice.enc_key.decrypt(friend.encrypt("hi alice")) == "hi alice"
	friend.sig_key.verify("signed", alice.sig_key.sign("signed"))


def test_string_format(alice):
	friend = alice.to_friend()
	raw = json.loads(b64decode_nopad(friend.to_string()))
	assert set(raw) == {'id', 'nickname', 'pub_key', 'ver_key'}
	assert raw['pub_key'] == alice.enc_key.pub_key_pem()
	assert raw['ver_key'] == alice.sig_key.pub_key_pem()


def test_from_string_empty_id(alice):
	text = make_string(id="", nickname="x",
		pub_key=alice.enc_key.pub_key_pem(),
		ver_key=alice.sig_key.pub_key_pem())
	with pytest.raises(InvalidFriendString):
		Friend.from_string(text)


def test_from_string_missing_field(alice):
	text = make_string(id="abc", nickname="x",
		pub_key=alice.enc_key.pub_key_pem())
	with pytest.raises(InvalidFriendString):
		Friend.from_string(text)

	with pytest.raises(InvalidFriendString):
		Friend.from_string(make_string())


def test_from_string_invalid_encoding():
	with pytest.raises(EncodingError):
		Friend.from_string("!!! not base64 !!!")
	with pytest.raises(EncodingError):
		Friend.from_string(b64encode_nopad(b"{no json"))
	with pytest.raises(InvalidFriendString):
		Friend.from_string(b64encode_nopad(b"[1, 2]"))


def test_from_string_invalid_keys(alice):
	text = make_string(id="abc", nickname="x",
		pub_key=b64encode_nopad(b"garbage"),
		ver_key=alice.sig_key.pub_key_pem())
	with pytest.raises(CryptoBackendError):
		Friend.from_string(text)

	text = make_string(id="abc", nickname="x",
		pub_key=alice.enc_key.pub_key_pem(),
		ver_key="%%%")
	with pytest.raises(EncodingError):
		Friend.from_string(text)


def test_messages_sorted_by_creation_time(alice):
	friend = alice.to_friend()
	friend.add_message(Message("m3", "a", "b", "third", 300))
	friend.add_message(Message("m1", "a", "b", "first", 100))
	friend.add_message(Message("m2", "a", "b", "second", 200))
	friend.add_message(Message("m2b", "a", "b", "second too", 200))

	msgs = friend.get_messages()
	assert [m.id for m in msgs] == ["m1", "m2", "m2b", "m3"]

	out = io.StringIO()
	friend.print_messages(out)
	assert out.getvalue().splitlines() == [
		"m1|100: first",
		"m2|200: second",
		"m2b|200: second too",
		"m3|300: third",
	]


def test_get_messages_returns_copy(alice):
	friend = alice.to_friend()
	friend.add_message(Message("m2", "a", "b", "second", 200))
	friend.add_message(Message("m1", "a", "b", "first", 100))

	msgs = friend.get_messages()
	assert [m.id for m in msgs] == ["m1", "m2"]
	assert msgs is not friend.messages

	# Reading the history leaves arrival order alone
	assert [m.id for m in friend.messages] == ["m2", "m1"]
	msgs.clear()
	assert len(friend.messages) == 2

	friend.add_message(Message("m0", "a", "b", "zero", 50))
	assert [m.id for m in friend.messages] == ["m2", "m1", "m0"]
	assert [m.id for m in friend.get_messages()] == ["m0", "m1", "m2"]
