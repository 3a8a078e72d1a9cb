import pytest

from ipniprovider.peerutil import PeerID, PeerIDError, Policy

EXCEPT_ID_STR = "12D3KooWK7CTS7cyWi51PeNE3cTjS2F2kDCZaQVU4A5xBmb9J1do"
OTHER_ID_STR = "12D3KooWSG3JuvEjRkSxt93ADTjQxqe4ExbBwSkQ9Zyk1WfBaZJF"


@pytest.fixture
def except_id():
    return PeerID.decode(EXCEPT_ID_STR)


@pytest.fixture
def other_id():
    return PeerID.decode(OTHER_ID_STR)


@pytest.mark.parametrize("text", [EXCEPT_ID_STR, OTHER_ID_STR])
def test_peer_id_round_trip(text):
    assert str(PeerID.decode(text)) == text


def test_peer_ids_differ(except_id, other_id):
    assert except_id.raw != other_id.raw
    assert PeerID.decode(EXCEPT_ID_STR) == except_id


@pytest.mark.parametrize("text", ["bad ID", "", "Qm0000", "1", "xyz"])
def test_peer_id_decode_rejects_bad_input(text):
    with pytest.raises(PeerIDError):
        PeerID.decode(text)


def test_new_policy(except_id):
    with pytest.raises(PeerIDError, match="bad ID"):
        Policy.from_strings(False, [EXCEPT_ID_STR, "bad ID"])

    p = Policy.from_strings(False, [EXCEPT_ID_STR])
    assert p.any(True) is True

    p = Policy.from_strings(True, [EXCEPT_ID_STR])
    assert p.any(True) is True

    p = Policy(False)
    assert p.any(True) is False
    assert p.set_peer(except_id, False) is False

    p = Policy(True)
    assert p.any(True) is True
    assert p.set_peer(except_id, False) is True
    assert p.eval(except_id) is False


def test_false_default(except_id, other_id):
    p = Policy(False, except_id)
    assert p.default() is False

    assert p.eval(other_id) is False
    assert p.eval(except_id) is True

    assert p.set_peer(other_id, False) is False
    assert p.eval(other_id) is False

    assert p.set_peer(except_id, True) is False
    assert p.eval(except_id) is True

    assert p.set_peer(other_id, True) is True
    assert p.eval(other_id) is True

    assert p.set_peer(except_id, False) is True
    assert p.eval(except_id) is False


def test_true_default(except_id, other_id):
    p = Policy(True, except_id)
    assert p.default() is True

    assert p.eval(other_id) is True
    assert p.eval(except_id) is False

    assert p.set_peer(except_id, False) is False
    assert p.eval(except_id) is False

    assert p.set_peer(other_id, True) is False
    assert p.eval(other_id) is True

    assert p.set_peer(except_id, True) is True
    assert p.eval(except_id) is True

    assert p.set_peer(other_id, False) is True
    assert p.eval(other_id) is False


def test_except_strings():
    p = Policy.from_strings(False, None)
    assert len(p.except_strings()) == 0

    except_strs = [EXCEPT_ID_STR, OTHER_ID_STR]
    p = Policy.from_strings(False, except_strs)

    got = p.except_strings()
    assert len(got) == 2
    assert set(got) == set(except_strs)

    for peer_id in p.except_ids():
        p.set_peer(peer_id, False)

    assert p.except_strings() == []
    assert p.except_ids() == []