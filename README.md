# magicprobe

magicprobe holds the host-side pieces of a debug probe as small Python
modules with no dependencies beyond the standard library:

- `magicprobe.command` – the interpreter for GDB `monitor` commands
  (`CommandInterpreter`), a `Platform` class that stands for the probe
  hardware, and `parse_enable_or_disable`;
- `magicprobe.hostio` – semihosting file I/O requests sent to the debugger
  host (`HostIO`) and parsing of its `F` reply packets (`parse_reply`,
  `HostIOReply`);
- `magicprobe.crc32` – the MSB-first CRC-32 that GDB's `qCRC` packet expects
  (`crc32_update`, `generic_crc32`);
- `magicprobe.morse` – the Morse-code blinker for the error LED (`Morse`);
- `magicprobe.errors` – `ProbeError`, `ProbeTimeout`, `TargetLost` and
  `run_guarded`.

## Installation

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Monitor commands

`CommandInterpreter` takes a function that receives console text, a
`Platform`, a list that holds the scanned targets, and a `Morse` instance.
`process(target, line)` returns 0 on success, 1 on failure and -1 when no
command handled the line and no target is attached. Command names may be
abbreviated; the first command they prefix is run.

```python
from magicprobe.command import CommandInterpreter, Platform
from magicprobe.morse import Morse

lines = []
interp = CommandInterpreter(lines.append, Platform(), [], Morse())
interp.process(None, "connect_rst enable")   # 0
interp.process(None, "halt 500")             # sets the halt timeout
print("".join(lines))
```

The general commands are `version`, `help`, `jtag_scan`, `swdp_scan`,
`auto_scan`, `frequency`, `targets`, `morse`, `halt_timeout`, `connect_rst`,
`reset` and `heapinfo`. `tpwr`, `traceswo` and `debug_bmp` are added when the
`Platform` is created with `has_power_switch`, `has_traceswo` or `has_debug`.
`help_lines()` lists them all. The base `Platform` finds no devices when
scanning; a concrete probe overrides `jtag_scan` and `swdp_scan`.

## Semihosting host I/O

`HostIO` formats each request as an `F` packet, hands it to an object with a
`put_packet` method, and calls `wait_reply` to obtain the host's answer. The
errno and the interrupt flag of the last reply are kept on the instance.

```python
from magicprobe.hostio import HostIO, parse_reply

parse_reply("F-1,2,C")   # HostIOReply(retcode=-1, errno=2, interrupted=True)

class Sender:
    def put_packet(self, *args):
        print(*args)      # Fclose,00000003

io = HostIO(Sender(), lambda: parse_reply("F0"))
io.close(3)              # 0
```

## CRC and Morse

```python
from magicprobe.crc32 import crc32_update
from magicprobe.morse import Morse

crc32_update(0xFFFFFFFF, b"123456789")

m = Morse()
m.start("SOS", repeat=False)
ticks = [m.update() for _ in range(40)]   # LED on/off per tick
```

`generic_crc32(target, base, length, keepalive)` reads target memory through
`target.mem_read(addr, length)` in chunks, calls `keepalive` when more than a
second passes, and raises `ProbeError` if a read fails.

## What the package does not do

The package has no GDB Remote Serial Protocol server loop, no packet framing
with checksums and acknowledgements, and no hex encoding helpers; `HostIO`
relies on the caller to supply the packet sender and the reply wait. It has
no ITM/SWO trace decoder and no command-line tool for splitting trace output
into per-channel pipes, and it does not talk to probe hardware itself.