import socket

import pytest

from kvdict.dict.listen import ListenAddress


def test_parse_tcp_and_unix():
    t = ListenAddress.parse("tcp://127.0.0.1:9000")
    assert (t.network, t.address) == ("tcp", "127.0.0.1:9000")
    assert t.host_port() == ("127.0.0.1", 9000)
    u = ListenAddress.parse("unix:///run/dict.sock")
    assert (u.network, u.address) == ("unix", "/run/dict.sock")
    assert str(u) == "unix:///run/dict.sock"


def test_parse_tcp_empty_host_binds_all_interfaces():
    t = ListenAddress.parse("tcp://:9000")
    assert (t.network, t.address) == ("tcp", ":9000")
    assert t.host_port() == ("", 9000)


def test_tcp_bind_on_all_interfaces():
    s = ListenAddress.parse("tcp://:0").bind()
    try:
        assert s.getsockname()[0] == "0.0.0.0"
        assert s.getsockname()[1] > 0
    finally:
        s.close()


@pytest.mark.parametrize("bad", ["http://x:1", "tcp://hostonly", "unix://", "/just/a/path"])
def test_parse_rejects(bad):
    with pytest.raises(ValueError):
        ListenAddress.parse(bad)


@pytest.mark.skipif(not hasattr(socket, "AF_UNIX"), reason="unix sockets unavailable")
def test_unix_bind_replaces_stale_socket(tmp_path):
    path = tmp_path / "d.sock"
    addr = ListenAddress.parse(f"unix://{path}")
    s1 = addr.bind()
    s1.close()
    assert path.exists()
    s2 = addr.bind()
    try:
        assert s2.getsockname() == str(path)
    finally:
        s2.close()
