"""Interpreter for the debugger's ``monitor`` commands."""

from __future__ import annotations

import logging
import re
import string
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol

from .errors import ProbeError, ProbeTimeout
from .morse import Morse

logger = logging.getLogger(__name__)

FREQ_FIXED = 0xFFFFFFFF
SWO_DEFAULT_BAUD = 2250000
DEFAULT_HALT_TIMEOUT = 2000
TRACE_INTERFACE = 5
TRACE_ENDPOINT = 0x85

_MASK = 0xFFFFFFFF
_DIGITS = string.digits + string.ascii_lowercase
_TIMEOUT_MSG = "Timeout during scan. Is target stuck in WFI?\n"


class ScanTarget(Protocol):
    """A target as listed by the ``targets`` command."""

    driver_name: str
    core_name: str | None
    attached: bool
    designer: int
    idcode: int


class CommandTarget(Protocol):
    """An attached target that may accept target-specific commands."""

    def command(self, argv: Sequence[str]) -> int: ...
    def command_help(self) -> Iterable[str]: ...
    def set_heapinfo(
        self, heap_base: int, heap_limit: int, stack_base: int, stack_limit: int
    ) -> None: ...


def _strtol(text: str, base: int = 10) -> tuple[int, str]:
    """Parse a leading integer like C strtol; return the value and the rest."""
    match = re.match(r"\s*([+-]?)(.*)", text, re.DOTALL)
    sign, rest = match.groups()
    if base in (0, 16) and rest[:2].lower() == "0x" and rest[2:3] and rest[2] in string.hexdigits:
        rest = rest[2:]
        base = 16
    elif base == 0:
        base = 8 if rest.startswith("0") else 10
    digits = _DIGITS[:base]
    value = 0
    used = 0
    for char in rest:
        index = digits.find(char.lower())
        if index < 0:
            break
        value = value * base + index
        used += 1
    return (-value if sign == "-" else value), rest[used:]


def _atoi(text: str) -> int:
    return _strtol(text, 10)[0]


def parse_enable_or_disable(text: str) -> bool:
    """Return True for a prefix of 'enable', False for a prefix of 'disable'.

    Raises ValueError, whose message is meant for the user, otherwise.
    """
    if not text:
        raise ValueError("'enable' or 'disable' argument must be provided")
    if "enable".startswith(text):
        return True
    if "disable".startswith(text):
        return False
    raise ValueError(f"Argument '{text}' not recognized as 'enable' or 'disable'")


class Platform:
    """The probe hardware as seen by the command interpreter.

    This base class keeps its state in attributes and finds no devices when
    scanning; a concrete probe overrides the scan methods.
    """

    def __init__(
        self,
        *,
        board_ident: str = "Magic Probe ",
        ident: str = "",
        firmware_version: str = "",
        hwversion: int = 0,
        voltage: str | None = None,
        voltage_sense: int = 0,
        power_conflict_threshold: int = 5,
        serial_no: str = "",
        frequency: int = 0,
        frequency_fixed: bool = False,
        has_power_switch: bool = False,
        has_traceswo: bool = False,
        traceswo_protocol: int = 1,
        has_debug: bool = False,
    ) -> None:
        self.board_ident = board_ident
        self.ident = ident
        self.firmware_version = firmware_version
        self.hwversion = hwversion
        self.voltage = voltage
        self.voltage_sense = voltage_sense
        self.power_conflict_threshold = power_conflict_threshold
        self.serial_no = serial_no
        self.frequency = frequency
        self.frequency_fixed = frequency_fixed
        self.has_power_switch = has_power_switch
        self.has_traceswo = has_traceswo
        self.traceswo_protocol = traceswo_protocol
        self.has_debug = has_debug
        self.nrst = False
        self.power = False
        self.trace_mask: int | None = None
        self.trace_baudrate: int | None = None

    def target_voltage(self) -> str | None:
        return self.voltage

    def target_voltage_sense(self) -> int:
        return self.voltage_sense

    def nrst_set_val(self, assert_: bool) -> None:
        self.nrst = bool(assert_)

    def max_frequency_set(self, frequency: int) -> None:
        if not self.frequency_fixed:
            self.frequency = frequency & _MASK

    def max_frequency_get(self) -> int:
        return FREQ_FIXED if self.frequency_fixed else self.frequency

    def target_get_power(self) -> bool:
        return self.power

    def target_set_power(self, power: bool) -> None:
        self.power = bool(power)

    def jtag_scan(self, irlens: Sequence[int] | None) -> list[ScanTarget]:
        """Scan the JTAG chain and return the targets found."""
        return []

    def swdp_scan(self, targetid: int) -> list[ScanTarget]:
        """Scan the SW-DP and return the targets found."""
        return []

    def traceswo_init(self, channel_mask: int, baudrate: int | None = None) -> None:
        self.trace_mask = channel_mask
        self.trace_baudrate = baudrate


@dataclass(frozen=True)
class _Command:
    name: str
    handler: Callable[["CommandTarget | None", list[str]], bool]
    help: str


class CommandInterpreter:
    """Parses and runs monitor command lines.

    *output* receives text for the debugger console. *targets* is the list of
    scanned targets, replaced in place by the scan commands.
    """

    def __init__(
        self,
        output: Callable[[str], None],
        platform: Platform,
        targets: list,
        morse: Morse,
    ) -> None:
        self.output = output
        self.platform = platform
        self.targets = targets
        self.morse = morse
        self.connect_assert_nrst = False
        self.debug_bmp = False
        self.cortexm_wait_timeout = DEFAULT_HALT_TIMEOUT
        commands = [
            _Command("version", self._cmd_version, "Display firmware version info"),
            _Command("help", self._cmd_help, "Display help for monitor commands"),
            _Command("jtag_scan", self._cmd_jtag_scan, "Scan JTAG chain for devices"),
            _Command("swdp_scan", self._cmd_swdp_scan, "Scan SW-DP for devices"),
            _Command("auto_scan", self._cmd_auto_scan,
                     "Automatically scan all chain types for devices"),
            _Command("frequency", self._cmd_frequency, "set minimum high and low times"),
            _Command("targets", self._cmd_targets, "Display list of available targets"),
            _Command("morse", self._cmd_morse, "Display morse error message"),
            _Command("halt_timeout", self._cmd_halt_timeout,
                     "Timeout (ms) to wait until Cortex-M is halted: (Default 2000)"),
            _Command("connect_rst", self._cmd_connect_reset,
                     "Configure connect under reset: (enable|disable)"),
            _Command("reset", self._cmd_reset, "Pulse the nRST line - disconnects target"),
        ]
        if platform.has_power_switch:
            commands.append(_Command("tpwr", self._cmd_target_power,
                                     "Supplies power to the target: (enable|disable)"))
        if platform.has_traceswo:
            if platform.traceswo_protocol == 2:
                text = "Start trace capture, NRZ mode: (baudrate) (decode channel ...)"
            else:
                text = "Start trace capture, Manchester mode: (decode channel ...)"
            commands.append(_Command("traceswo", self._cmd_traceswo, text))
        commands.append(_Command("heapinfo", self._cmd_heapinfo, "Set semihosting heapinfo"))
        if platform.has_debug:
            commands.append(_Command(
                "debug_bmp", self._cmd_debug_bmp,
                'Output BMP "debug" strings to the second vcom: (enable|disable)'))
        self._commands = tuple(commands)

    def process(self, target: CommandTarget | None, line: str) -> int:
        """Run *line*: 0 on success, 1 on failure, -1 if nothing handled it.

        A command name may be abbreviated; the first command it prefixes wins.
        """
        argv = [part for part in re.split(r"[ \t]+", line) if part]
        for command in self._commands:
            if not argv or command.name.startswith(argv[0]):
                return 0 if command.handler(target, argv) else 1
        if target is None:
            return -1
        return target.command(argv)

    def help_lines(self) -> list[str]:
        """One help line per general command."""
        return [f"\t{c.name} -- {c.help}" for c in self._commands]

    # Helpers.

    def _print_voltage(self) -> None:
        voltage = self.platform.target_voltage()
        if voltage:
            self.output(f"Target voltage: {voltage}\n")

    def _scan(self, scan: Callable[[], list]) -> int:
        try:
            found = scan()
        except ProbeTimeout:
            self.output(_TIMEOUT_MSG)
            return -1
        except ProbeError as exc:
            self.output(f"Exception: {exc.msg}\n")
            return -1
        self.targets[:] = found
        return len(found)

    def _scan_done(self) -> bool:
        self._cmd_targets(None, [])
        self.morse.start(None, False)
        return True

    def _enable_disable(self, argv: list[str], current: bool) -> tuple[bool, bool]:
        """Return (new value, whether to print the status)."""
        if len(argv) == 1:
            return current, True
        if len(argv) == 2:
            try:
                return parse_enable_or_disable(argv[1]), True
            except ValueError as exc:
                self.output(f"{exc}\n")
                return current, False
        self.output("Unrecognized command format\n")
        return current, False

    # Command handlers.

    def _cmd_version(self, target, argv) -> bool:
        platform = self.platform
        self.output(f"{platform.board_ident}{platform.ident}{platform.firmware_version}")
        self.output(f", Hardware Version {platform.hwversion}\n")
        return True

    def _cmd_help(self, target, argv) -> bool:
        self.output("General commands:\n")
        for line in self.help_lines():
            self.output(line + "\n")
        if target is None:
            return True
        for line in target.command_help():
            self.output(line)
        return True

    def _cmd_jtag_scan(self, target, argv) -> bool:
        self._print_voltage()
        irlens = [_atoi(arg) for arg in argv[1:]] if len(argv) > 1 else None
        if self.connect_assert_nrst:
            self.platform.nrst_set_val(True)
        devs = self._scan(lambda: self.platform.jtag_scan(irlens))
        if devs <= 0:
            self.platform.nrst_set_val(False)
            self.output("JTAG device scan failed!\n")
            return False
        return self._scan_done()

    def _cmd_swdp_scan(self, target, argv) -> bool:
        targetid = _strtol(argv[1], 0)[0] & _MASK if len(argv) > 1 else 0
        self._print_voltage()
        if self.connect_assert_nrst:
            self.platform.nrst_set_val(True)
        devs = self._scan(lambda: self.platform.swdp_scan(targetid))
        if devs <= 0:
            self.platform.nrst_set_val(False)
            self.output("SW-DP scan failed!\n")
            return False
        return self._scan_done()

    def _cmd_auto_scan(self, target, argv) -> bool:
        self._print_voltage()
        if self.connect_assert_nrst:
            self.platform.nrst_set_val(True)
        devs = -1
        try:
            found = self.platform.jtag_scan(None)
            devs = len(found)
            if devs <= 0:
                self.output("JTAG scan found no devices, trying SWD!\n")
                found = self.platform.swdp_scan(0)
                devs = len(found)
                if devs <= 0:
                    self.platform.nrst_set_val(False)
                    self.output("SW-DP scan failed!\n")
                    return False
            self.targets[:] = found
        except ProbeTimeout:
            self.output(_TIMEOUT_MSG)
            devs = -1
        except ProbeError as exc:
            self.output(f"Exception: {exc.msg}\n")
            devs = -1
        if devs <= 0:
            self.platform.nrst_set_val(False)
            self.output("auto scan failed!\n")
            return False
        return self._scan_done()

    def _cmd_frequency(self, target, argv) -> bool:
        if len(argv) == 2:
            frequency, rest = _strtol(argv[1], 10)
            if rest.startswith("k"):
                frequency *= 1000
            elif rest.startswith("M"):
                frequency *= 1000 * 1000
            self.platform.max_frequency_set(frequency & _MASK)
        freq = self.platform.max_frequency_get()
        if freq == FREQ_FIXED:
            self.output("SWJ freq fixed\n")
        else:
            self.output(f"Max SWJ freq {freq:08x}\n")
        return True

    def _display_target(self, index: int, target: ScanTarget) -> None:
        core = target.core_name or ""
        if target.driver_name == "ARM Cortex-M":
            mark = " * " if target.attached else " "
            self.output(
                f"***{index:2d}{mark}Unknown {target.driver_name} "
                f"Designer {target.designer:3x} Partno {target.idcode:3x} {core}\n"
            )
        else:
            mark = "*" if target.attached else " "
            self.output(f"{index:2d}   {mark}  {target.driver_name} {core}\n")

    def _cmd_targets(self, target, argv) -> bool:
        self.output("Available Targets:\n")
        self.output("No. Att Driver\n")
        if not self.targets:
            self.output("No usable targets found.\n")
            return False
        for index, item in enumerate(self.targets, start=1):
            self._display_target(index, item)
        return True

    def _cmd_morse(self, target, argv) -> bool:
        if self.morse.msg:
            self.output(f"{self.morse.msg}\n")
            logger.warning("%s", self.morse.msg)
        return True

    def _cmd_connect_reset(self, target, argv) -> bool:
        self.connect_assert_nrst, show = self._enable_disable(argv, self.connect_assert_nrst)
        if show:
            state = "enabled" if self.connect_assert_nrst else "disabled"
            self.output(f"Assert nRST during connect: {state}\n")
        return True

    def _cmd_halt_timeout(self, target, argv) -> bool:
        if len(argv) > 1:
            self.cortexm_wait_timeout = _atoi(argv[1])
        self.output(
            f"Cortex-M timeout to wait for device haltes: {self.cortexm_wait_timeout}\n"
        )
        return True

    def _cmd_reset(self, target, argv) -> bool:
        self.targets.clear()
        self.platform.nrst_set_val(True)
        self.platform.nrst_set_val(False)
        return True

    def _cmd_target_power(self, target, argv) -> bool:
        platform = self.platform
        if len(argv) == 1:
            state = "enabled" if platform.target_get_power() else "disabled"
            self.output(f"Target Power: {state}\n")
        elif len(argv) == 2:
            try:
                want_enable = parse_enable_or_disable(argv[1])
            except ValueError as exc:
                self.output(f"{exc}\n")
                return True
            if (
                want_enable
                and not platform.target_get_power()
                and platform.target_voltage_sense() > platform.power_conflict_threshold
            ):
                self.output(f"Target already powered ({platform.target_voltage()})\n")
            else:
                platform.target_set_power(want_enable)
                self.output(f"{'Enabling' if want_enable else 'Disabling'} target power\n")
        else:
            self.output("Unrecognized command format\n")
        return True

    def _cmd_traceswo(self, target, argv) -> bool:
        nrz = self.platform.traceswo_protocol == 2
        baudrate = SWO_DEFAULT_BAUD if nrz else None
        mask = 0
        decode_arg = 1
        if nrz and len(argv) > 1 and argv[1][:1].isdigit():
            baudrate = _atoi(argv[1]) or SWO_DEFAULT_BAUD
            decode_arg = 2
        if len(argv) > decode_arg and "decode".startswith(argv[decode_arg]):
            mask = _MASK
            if len(argv) > decode_arg + 1:
                mask = 0
                for arg in argv[decode_arg + 1:]:
                    channel = _atoi(arg)
                    if 0 <= channel <= 31:
                        mask |= 1 << channel
        if self.debug_bmp:
            if nrz:
                self.output(f"baudrate: {baudrate} ")
            self.output(f"channel mask: {mask:032b}\n")
        self.platform.traceswo_init(mask, baudrate)
        self.output(
            f"{self.platform.serial_no}:{TRACE_INTERFACE:02X}:{TRACE_ENDPOINT:02X}\n"
        )
        return True

    def _cmd_debug_bmp(self, target, argv) -> bool:
        self.debug_bmp, show = self._enable_disable(argv, self.debug_bmp)
        if show:
            self.output(f"Debug mode is {'enabled' if self.debug_bmp else 'disabled'}\n")
        return True

    def _cmd_heapinfo(self, target, argv) -> bool:
        if target is None:
            self.output("not attached\n")
        elif len(argv) == 5:
            values = [_strtol(arg, 16)[0] & _MASK for arg in argv[1:5]]
            heap_base, heap_limit, stack_base, stack_limit = values
            self.output(
                f"heapinfo heap_base: 0x{heap_base:x} heap_limit: 0x{heap_limit:x} "
                f"stack_base: 0x{stack_base:x} stack_limit: 0x{stack_limit:x}\n"
            )
            target.set_heapinfo(heap_base, heap_limit, stack_base, stack_limit)
        else:
            self.output("heapinfo heap_base heap_limit stack_base stack_limit\n")
        return True