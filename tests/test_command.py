from dataclasses import dataclass, field

import pytest

from magicprobe.command import (
    FREQ_FIXED,
    CommandInterpreter,
    Platform,
    parse_enable_or_disable,
)
from magicprobe.errors import ProbeError, ProbeTimeout
from magicprobe.morse import Morse


class Recorder:
    def __init__(self):
        self.parts = []

    def __call__(self, text):
        self.parts.append(text)

    @property
    def text(self):
        return "".join(self.parts)


@dataclass
class FakeTarget:
    driver_name: str = "Fake"
    core_name: str | None = None
    attached: bool = False
    designer: int = 0
    idcode: int = 0
    command_result: int = 0
    commands: list = field(default_factory=list)
    heapinfo: tuple | None = None

    def command(self, argv):
        self.commands.append(list(argv))
        return self.command_result

    def command_help(self):
        return ["\tfake -- target command\n"]

    def set_heapinfo(self, heap_base, heap_limit, stack_base, stack_limit):
        self.heapinfo = (heap_base, heap_limit, stack_base, stack_limit)


class FakePlatform(Platform):
    def __init__(self, jtag=None, swd=None, jtag_exc=None, **kwargs):
        super().__init__(**kwargs)
        self.jtag_found = jtag or []
        self.swd_found = swd or []
        self.jtag_exc = jtag_exc
        self.nrst_calls = []
        self.jtag_args = []
        self.swd_args = []

    def nrst_set_val(self, assert_):
        self.nrst_calls.append(assert_)
        super().nrst_set_val(assert_)

    def jtag_scan(self, irlens):
        self.jtag_args.append(irlens)
        if self.jtag_exc is not None:
            raise self.jtag_exc
        return list(self.jtag_found)

    def swdp_scan(self, targetid):
        self.swd_args.append(targetid)
        return list(self.swd_found)


def make(platform=None, targets=None):
    out = Recorder()
    platform = platform or FakePlatform()
    targets = [] if targets is None else targets
    morse = Morse()
    return CommandInterpreter(out, platform, targets, morse), out, platform, targets, morse


@pytest.mark.parametrize(
    "text,expected", [("enable", True), ("en", True), ("disable", False), ("d", False)]
)
def test_parse_enable_or_disable(text, expected):
    assert parse_enable_or_disable(text) is expected


def test_parse_enable_or_disable_empty():
    with pytest.raises(ValueError, match="'enable' or 'disable' argument must be provided"):
        parse_enable_or_disable("")


def test_parse_enable_or_disable_unknown():
    with pytest.raises(ValueError, match="not recognized"):
        parse_enable_or_disable("maybe")


def test_version_by_prefix():
    interp, out, *_ = make(FakePlatform(ident="(Test) ", hwversion=3))
    assert interp.process(None, "ver") == 0
    assert out.text.endswith(", Hardware Version 3\n")
    assert "(Test) " in out.text


def test_empty_line_runs_first_command():
    interp, out, *_ = make()
    assert interp.process(None, "") == 0
    assert "Hardware Version" in out.text


def test_unknown_command_without_target():
    interp, out, *_ = make()
    assert interp.process(None, "bogus") == -1
    assert out.text == ""


def test_unknown_command_goes_to_target():
    interp, _, *_ = make()
    target = FakeTarget(command_result=1)
    assert interp.process(target, "bogus  a\tb") == 1
    assert target.commands == [["bogus", "a", "b"]]


def test_help_lines_and_output():
    interp, out, *_ = make()
    lines = interp.help_lines()
    assert "\tversion -- Display firmware version info" in lines
    assert interp.process(FakeTarget(), "help") == 0
    assert out.text.startswith("General commands:\n")
    assert out.text.endswith("\tfake -- target command\n")


def test_optional_commands_follow_platform():
    interp, *_ = make(FakePlatform())
    names = [line.split(" -- ")[0].strip() for line in interp.help_lines()]
    assert "tpwr" not in names and "traceswo" not in names
    interp, *_ = make(FakePlatform(has_power_switch=True, has_traceswo=True, has_debug=True))
    names = [line.split(" -- ")[0].strip() for line in interp.help_lines()]
    assert {"tpwr", "traceswo", "debug_bmp"} <= set(names)


def test_connect_rst():
    interp, out, *_ = make()
    assert interp.process(None, "connect_rst enable") == 0
    assert interp.connect_assert_nrst is True
    assert out.text == "Assert nRST during connect: enabled\n"


def test_connect_rst_bad_argument_keeps_state():
    interp, out, *_ = make()
    interp.process(None, "connect_rst wat")
    assert interp.connect_assert_nrst is False
    assert "Argument 'wat' not recognized" in out.text


def test_connect_rst_too_many_args():
    interp, out, *_ = make()
    interp.process(None, "connect_rst a b")
    assert out.text == "Unrecognized command format\n"


def test_halt_timeout():
    interp, out, *_ = make()
    assert interp.cortexm_wait_timeout == 2000
    interp.process(None, "halt_timeout 500")
    assert interp.cortexm_wait_timeout == 500
    assert out.text == "Cortex-M timeout to wait for device haltes: 500\n"


def test_frequency_suffix_sets_platform():
    interp, out, platform, *_ = make()
    interp.process(None, "frequency 4k")
    assert platform.max_frequency_get() == 4000
    interp.process(None, "frequency 2M")
    assert platform.max_frequency_get() == 2000 * 1000
    assert out.text.startswith("Max SWJ freq ")


def test_frequency_fixed():
    interp, out, platform, *_ = make(FakePlatform(frequency_fixed=True))
    interp.process(None, "frequency 1000")
    assert platform.max_frequency_get() == FREQ_FIXED
    assert out.text == "SWJ freq fixed\n"


def test_targets_empty():
    interp, out, *_ = make()
    assert interp.process(None, "targets") == 1
    assert out.text.endswith("No usable targets found.\n")


def test_targets_listing():
    interp, out, *_ = make(targets=[FakeTarget(driver_name="Fake", core_name="M0", attached=True)])
    assert interp.process(None, "targets") == 0
    assert out.text.startswith("Available Targets:\nNo. Att Driver\n")
    assert "*  Fake M0\n" in out.text


def test_swdp_scan_populates_targets():
    found = [FakeTarget()]
    interp, out, platform, targets, morse = make(FakePlatform(swd=found))
    morse.start("TARGET LOST.", True)
    assert interp.process(None, "swdp_scan 0x1234") == 0
    assert platform.swd_args == [0x1234]
    assert targets == found
    assert morse.msg is None


def test_jtag_scan_failure():
    interp, out, platform, *_ = make()
    assert interp.process(None, "jtag_scan 4 5") == 1
    assert platform.jtag_args == [[4, 5]]
    assert platform.nrst_calls == [False]
    assert out.text.endswith("JTAG device scan failed!\n")


def test_jtag_scan_timeout():
    interp, out, *_ = make(FakePlatform(jtag_exc=ProbeTimeout("slow")))
    assert interp.process(None, "jtag_scan") == 1
    assert "Timeout during scan. Is target stuck in WFI?\n" in out.text


def test_jtag_scan_error_message():
    interp, out, *_ = make(FakePlatform(jtag_exc=ProbeError("broken")))
    interp.process(None, "jtag_scan")
    assert "Exception: broken\n" in out.text


def test_connect_rst_asserts_nrst_before_scan():
    interp, _, platform, *_ = make(FakePlatform(jtag=[FakeTarget()]))
    interp.process(None, "connect_rst enable")
    assert interp.process(None, "jtag_scan") == 0
    assert platform.nrst_calls == [True]


def test_auto_scan_falls_back_to_swd():
    found = [FakeTarget()]
    interp, out, platform, targets, _ = make(FakePlatform(swd=found))
    assert interp.process(None, "auto_scan") == 0
    assert "JTAG scan found no devices, trying SWD!\n" in out.text
    assert platform.swd_args == [0]
    assert targets == found


def test_auto_scan_nothing_found():
    interp, out, *_ = make()
    assert interp.process(None, "auto_scan") == 1
    assert out.text.endswith("SW-DP scan failed!\n")


def test_reset_clears_targets_and_pulses_nrst():
    interp, _, platform, targets, _ = make(targets=[FakeTarget()])
    assert interp.process(None, "reset") == 0
    assert targets == []
    assert platform.nrst_calls == [True, False]


def test_morse_reports_message():
    interp, out, _, _, morse = make()
    morse.start("TARGET LOST.", True)
    interp.process(None, "morse")
    assert out.text == "TARGET LOST.\n"


def test_heapinfo_not_attached():
    interp, out, *_ = make()
    interp.process(None, "heapinfo 1 2 3 4")
    assert out.text == "not attached\n"


def test_heapinfo_sets_target():
    interp, out, *_ = make()
    target = FakeTarget()
    interp.process(target, "heapinfo 20000000 20001000 0x20002000 20003000")
    assert target.heapinfo == (0x20000000, 0x20001000, 0x20002000, 0x20003000)
    assert out.text.startswith("heapinfo heap_base: 0x20000000")


def test_heapinfo_usage():
    interp, out, *_ = make()
    interp.process(FakeTarget(), "heapinfo 1")
    assert out.text == "heapinfo heap_base heap_limit stack_base stack_limit\n"


def test_tpwr_enable_and_status():
    interp, out, platform, *_ = make(FakePlatform(has_power_switch=True))
    interp.process(None, "tpwr enable")
    assert platform.target_get_power() is True
    assert out.text == "Enabling target power\n"


def test_tpwr_refuses_when_powered_externally():
    plat = FakePlatform(has_power_switch=True, voltage="3.3V", voltage_sense=33)
    interp, out, platform, *_ = make(plat)
    interp.process(None, "tpwr enable")
    assert platform.target_get_power() is False
    assert out.text == "Target already powered (3.3V)\n"


def test_traceswo_channel_mask():
    plat = FakePlatform(has_traceswo=True, serial_no="SERIAL01")
    interp, out, platform, *_ = make(plat)
    interp.process(None, "traceswo decode 0 3 40")
    assert platform.trace_mask == (1 << 0) | (1 << 3)
    assert out.text == "SERIAL01:05:85\n"


def test_traceswo_nrz_baudrate():
    plat = FakePlatform(has_traceswo=True, traceswo_protocol=2)
    interp, _, platform, *_ = make(plat)
    interp.process(None, "traceswo 115200 decode")
    assert platform.trace_baudrate == 115200
    assert platform.trace_mask == 0xFFFFFFFF


def test_debug_bmp_toggle():
    interp, out, *_ = make(FakePlatform(has_debug=True))
    interp.process(None, "debug_bmp enable")
    assert interp.debug_bmp is True
    assert out.text == "Debug mode is enabled\n"