import socket
from classpilot.__main__ import find_available_port


def test_find_available_port_skips_bound_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as busy:
        busy.bind(("127.0.0.1", 0))
        busy.listen(1)
        taken = busy.getsockname()[1]

        port = find_available_port(taken, host="127.0.0.1", attempts=20)

    assert port != taken
    assert taken < port < taken + 20
