"""File I/O requests sent to the debugger host on the target's behalf."""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

_MASK = 0xFFFFFFFF
_REPLY_RE = re.compile(
    r"\s*([0-9a-fA-F]+)(?:,\s*([0-9a-fA-F]+)(?:,(.))?)?", re.DOTALL
)


@dataclass(frozen=True)
class HostIOReply:
    """Result of a host system call as reported in an ``F`` packet."""

    retcode: int
    errno: int = 0
    interrupted: bool = False


class PacketSender(Protocol):
    def put_packet(self, *args: str | bytes) -> None: ...


def parse_reply(packet: str | bytes) -> HostIOReply:
    """Parse an ``F`` reply packet such as ``F-1,2,C``.

    A trailing ``C`` field means the user asked to interrupt the target.
    """
    if isinstance(packet, (bytes, bytearray, memoryview)):
        packet = bytes(packet).decode("latin-1")
    negative = packet[1:2] == "-"
    body = packet[2:] if negative else packet[1:]
    match = _REPLY_RE.match(body)
    if match is None:
        return HostIOReply(0)
    retcode = int(match.group(1), 16)
    if negative:
        retcode = -retcode
    errno = int(match.group(2), 16) if match.group(2) else 0
    interrupted = match.group(3) == "C"
    return HostIOReply(retcode, errno, interrupted)


def _x8(value: int) -> str:
    return f"{int(value) & _MASK:08X}"


def _x(value: int) -> str:
    return f"{int(value) & _MASK:X}"


def _buffer(addr: int, length: int) -> str:
    return f"{_x8(addr)}/{_x(length)}"


class HostIO:
    """Issues host I/O requests and waits for the debugger's reply.

    *wait_reply* runs the protocol loop until the host answers with an
    ``F`` packet and returns the parsed HostIOReply. The errno and the
    interrupt flag of the last reply are kept on the instance.
    """

    def __init__(
        self, packet_io: PacketSender, wait_reply: Callable[[], HostIOReply]
    ) -> None:
        self.packet_io = packet_io
        self._wait_reply = wait_reply
        self.errno = 0
        self.interrupted = False

    def _call(self, name: str, *fields: str) -> int:
        self.packet_io.put_packet(",".join((f"F{name}",) + fields))
        reply = self._wait_reply()
        self.errno = reply.errno
        self.interrupted = reply.interrupted
        return reply.retcode

    def open(self, path: int, path_len: int, flags: int, mode: int) -> int:
        return self._call("open", _buffer(path, path_len), _x8(flags), _x8(mode))

    def close(self, fd: int) -> int:
        return self._call("close", _x8(fd))

    def read(self, fd: int, buf: int, count: int) -> int:
        return self._call("read", _x8(fd), _x8(buf), _x8(count))

    def write(self, fd: int, buf: int, count: int) -> int:
        return self._call("write", _x8(fd), _x8(buf), _x8(count))

    def lseek(self, fd: int, offset: int, flag: int) -> int:
        return self._call("lseek", _x8(fd), _x8(offset), _x8(flag))

    def rename(
        self, oldpath: int, old_len: int, newpath: int, new_len: int
    ) -> int:
        return self._call(
            "rename", _buffer(oldpath, old_len), _buffer(newpath, new_len)
        )

    def unlink(self, path: int, path_len: int) -> int:
        return self._call("unlink", _buffer(path, path_len))

    def stat(self, path: int, path_len: int, buf: int) -> int:
        return self._call("stat", _buffer(path, path_len), _x8(buf))

    def fstat(self, fd: int, buf: int) -> int:
        return self._call("fstat", _x(fd), _x8(buf))

    def gettimeofday(self, tv: int, tz: int) -> int:
        return self._call("gettimeofday", _x8(tv), _x8(tz))

    def isatty(self, fd: int) -> int:
        return self._call("isatty", _x8(fd))

    def system(self, cmd: int, cmd_len: int) -> int:
        return self._call("system", _buffer(cmd, cmd_len))