import io
import socket
import subprocess
import types

import paramiko
import pytest

from capx.config.models import NodeSpec
from capx.execution.runner import CommandError, CommandTimeoutError
from capx.nodes.container import ContainerNode
from capx.nodes.factory import open_node
from capx.nodes.local import LocalNode
from capx.nodes.ssh import SSHNode, open_ssh
from capx.providers.errors import NodeConnectionError


class SpyRun:
    def __init__(self):
        self.calls = []

    def __call__(self, argv, input=None, capture_output=False, text=False, cwd=None, env=None, timeout=None):
        self.calls.append({"argv": argv, "input": input, "env": env})
        return types.SimpleNamespace(returncode=0, stdout="out", stderr="")


def test_container_node_forwards_env_by_name(monkeypatch):
    spy = SpyRun()
    monkeypatch.setattr(subprocess, "run", spy)

    node = ContainerNode("kind-control-plane")
    rc, out, _ = node.run(["clusterawsadm", "version"], env={"AWS_SECRET_ACCESS_KEY": "s3cr3t"}, stdin_text="x")

    call = spy.calls[0]
    assert call["argv"] == [
        "docker", "exec", "-i", "-e", "AWS_SECRET_ACCESS_KEY",
        "kind-control-plane", "clusterawsadm", "version",
    ]
    assert "s3cr3t" not in " ".join(call["argv"])
    assert call["env"]["AWS_SECRET_ACCESS_KEY"] == "s3cr3t"
    assert call["input"] == "x"
    assert (rc, out) == (0, "out")


def test_local_node(monkeypatch):
    spy = SpyRun()
    monkeypatch.setattr(subprocess, "run", spy)
    assert LocalNode().run(["echo", "hi"]) == (0, "out", "")
    assert spy.calls[0]["argv"] == ["echo", "hi"]


def test_open_node_by_kind():
    assert isinstance(open_node(NodeSpec(kind="local")), LocalNode)
    node = open_node(NodeSpec(kind="container", container="mgmt"))
    assert isinstance(node, ContainerNode) and node.container == "mgmt"
    with pytest.raises(ValueError):
        open_node(NodeSpec(kind="ssh"))


# ---- Fakes for paramiko ----

class _Channel:
    def __init__(self, rc):
        self._rc = rc
        self.write_shut = False

    def recv_exit_status(self):
        return self._rc

    def shutdown_write(self):
        self.write_shut = True


class _Out(io.BytesIO):
    def __init__(self, data=b"", channel=None, exc=None):
        super().__init__(data)
        self.channel = channel
        self._exc = exc

    def read(self, *a):
        if self._exc:
            raise self._exc
        return super().read(*a)


class _In:
    def __init__(self, channel):
        self.channel = channel
        self.written = ""

    def write(self, s):
        self.written += s

    def flush(self):
        pass


class FakeSSHClient:
    def __init__(self, rc=0, exc=None):
        self.commands = []
        self.channel = _Channel(rc)
        self.stdin = _In(self.channel)
        self._exc = exc

    def exec_command(self, cmd, timeout=None):
        self.commands.append((cmd, timeout))
        return self.stdin, _Out(b"done", self.channel, self._exc), _Out(b"", self.channel)


def test_ssh_node_runs_with_inline_env_and_stdin():
    client = FakeSSHClient()
    node = SSHNode(client, name="bastion")

    rc, out, err = node.run(["sh", "-c", "cat > /kind/eks.config"], env={"A": "1 2"}, stdin_text="doc", timeout=9)

    cmd, timeout = client.commands[0]
    assert cmd == "env A='1 2' sh -c 'cat > /kind/eks.config'"
    assert timeout == 9
    assert client.stdin.written == "doc"
    assert client.channel.write_shut
    assert (rc, out, err) == (0, "done", "")


def test_ssh_node_timeout():
    node = SSHNode(FakeSSHClient(exc=socket.timeout()), name="bastion")
    with pytest.raises(CommandTimeoutError):
        node.run(["sleep", "100"], timeout=1)


def test_ssh_node_channel_failure_becomes_command_error():
    node = SSHNode(FakeSSHClient(exc=paramiko.SSHException("channel closed")), name="bastion")
    with pytest.raises(CommandError) as ei:
        node.run(["kubectl", "version"])
    assert "channel closed" in str(ei.value)


def test_open_ssh_connection_failure_is_wrapped(monkeypatch):
    closed = []

    class Unreachable:
        def set_missing_host_key_policy(self, policy): pass
        def connect(self, **kw): raise OSError("No route to host")
        def close(self): closed.append(True)

    monkeypatch.setattr(paramiko, "SSHClient", Unreachable)
    with pytest.raises(NodeConnectionError, match="No route to host"):
        open_ssh(host="10.0.0.9", username="root")
    assert closed == [True]
