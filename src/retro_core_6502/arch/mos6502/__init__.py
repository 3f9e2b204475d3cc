# src/retro_core_6502/arch/mos6502/__init__.py
"""
MOS 6502 (NMOS) CPUコア。Ricoh 2A03 は Mos6502Cpu(bus, decimal_enabled=False) で扱う。
"""
from .cpu import Mos6502Cpu
from .state import Mos6502CpuState
