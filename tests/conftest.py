# tests/conftest.py
"""
共通フィクスチャ: 64KiB RAM を全域にマップしたバスと、その上のMOS 6502 CPU。
"""
import pytest

from retro_core_6502.transport.bus import Bus, RAM
from retro_core_6502.arch.mos6502.cpu import Mos6502Cpu


@pytest.fixture
def bus():
    bus = Bus()
    bus.register_device(0x0000, 0xFFFF, RAM(0x10000))
    return bus


@pytest.fixture
def cpu(bus):
    return Mos6502Cpu(bus)


# @intent:responsibility プログラムをロードし、PCとレジスタを指定値に設定するヘルパーを提供します。
@pytest.fixture
def load_program(cpu):
    def _load(address, program, **registers):
        cpu.bus.load_bytes(address, bytes(program))
        state = cpu.get_state()
        state.pc = address
        for name, value in registers.items():
            setattr(state, name, value)
        cpu.restore_state(state)
        return cpu
    return _load
