"""Monitor command interpreter, semihosting host I/O, qCRC checksum and Morse blinker for debug probes."""

__version__ = "0.1.0"