import socket

import network


class FakeSocket:
    def __init__(self, address):
        self.address = address

    def __enter__(self):
        return self

    def __exit__(self, *args):
        return False

    def connect(self, target):
        pass

    def getsockname(self):
        return (self.address, 54321)


def test_get_local_ips_filters_loopback_and_link_local(monkeypatch):
    monkeypatch.setattr(network.socket, "socket", lambda *a, **kw: FakeSocket("10.0.0.5"))
    monkeypatch.setattr(
        network.socket,
        "getaddrinfo",
        lambda *a, **kw: [
            (socket.AF_INET, socket.SOCK_STREAM, 0, "", ("127.0.1.1", 0)),
            (socket.AF_INET, socket.SOCK_STREAM, 0, "", ("169.254.3.3", 0)),
            (socket.AF_INET, socket.SOCK_STREAM, 0, "", ("10.0.0.5", 0)),
            (socket.AF_INET, socket.SOCK_STREAM, 0, "", ("192.168.0.9", 0)),
        ],
    )
    assert network.get_local_ips() == ["10.0.0.5", "192.168.0.9"]


def test_get_local_ips_survives_lookup_failures(monkeypatch):
    def boom(*args, **kwargs):
        raise OSError("network unreachable")

    monkeypatch.setattr(network.socket, "socket", boom)
    monkeypatch.setattr(network.socket, "getaddrinfo", boom)
    assert network.get_local_ips() == []


def test_get_network_url_prefers_first_lan_address(monkeypatch):
    monkeypatch.setattr(network, "get_local_ips", lambda: ["192.168.1.4", "10.1.1.1"])
    assert network.get_network_url(3000) == "https://192.168.1.4:3000"
    assert network.get_network_url(80, "http") == "http://192.168.1.4:80"
