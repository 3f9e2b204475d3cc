# tests/core/test_abstract_cpu.py
"""
retro_core_6502.core.cpu (AbstractCpu) の実行フローを、最小の架空CPUで検証します。
"""
from dataclasses import dataclass

import pytest

from retro_core_6502.core.cpu import AbstractCpu
from retro_core_6502.core.snapshot import Operation
from retro_core_6502.core.state import CpuState
from retro_core_6502.transport.bus import Bus, RAM, BusAccessType

# @intent:test_suite Template Method (割り込み判定→フェッチ→デコード→実行→計上) の共通部分を検証します。


@dataclass
class ToyState(CpuState):
    acc: int = 0


# @intent:responsibility 1バイト命令のみを持つテスト用CPU。opcodeの下位4bitを消費サイクル数とし、値をaccに加算する。
class ToyCpu(AbstractCpu):
    def __init__(self, bus):
        self.interrupt_requested = False
        super().__init__(bus)

    def _create_initial_state(self):
        return ToyState()

    def _service_interrupts(self):
        if not self.interrupt_requested:
            return None
        self.interrupt_requested = False
        self._state.pc = 0x0080
        return Operation(opcode_hex="--", mnemonic="INT", cycle_count=5, length=0)

    def _fetch(self):
        opcode = self._bus.read(self._state.pc)
        self._state.pc = (self._state.pc + 1) & 0xFFFF
        return opcode

    def _decode(self, opcode):
        return Operation(opcode_hex=f"{opcode:02X}", mnemonic="ADD", operands=[f"#{opcode}"],
                         cycle_count=opcode & 0x0F)

    def _execute(self, operation):
        value = int(operation.opcode_hex, 16)
        self._state.acc = (self._state.acc + value) & 0xFF
        return (value & 0x0F) or 1

    def get_register_map(self):
        return {"PC": self._state.pc, "ACC": self._state.acc}

    def get_flag_state(self):
        return {}


@pytest.fixture
def toy():
    bus = Bus()
    bus.register_device(0x0000, 0x00FF, RAM(0x100))
    bus.load_bytes(0x0000, bytes([0x02, 0x03, 0x10, 0x04]))
    return ToyCpu(bus)


# @intent:test_case_step step()が実行結果のサイクル数を返し、累計と命令数に計上されることを検証します。
def test_step_returns_and_charges_cycles(toy):
    assert toy.step() == 2
    assert toy.step() == 3
    assert toy.cycle_count == 5
    assert toy.instruction_count == 2
    assert toy.get_register_map() == {"PC": 2, "ACC": 5}
    assert toy.last_operation.cycle_count == 3


# @intent:test_case_interrupt 割り込みシーケンスはサイクルに計上されるが命令数には数えないことを検証します。
def test_interrupt_is_its_own_step(toy):
    toy.interrupt_requested = True
    assert toy.step() == 5
    assert toy.get_state().pc == 0x0080
    assert toy.cycle_count == 5
    assert toy.instruction_count == 0
    assert toy.last_operation.mnemonic == "INT"


# @intent:test_case_run run()は命令境界で止まり、要求以上のサイクルを消費することを検証します。
def test_run_stops_at_instruction_boundary(toy):
    elapsed = toy.run(4)
    assert elapsed == 5
    assert toy.instruction_count == 2


# @intent:test_case_state get_state()は独立したコピーを返し、restore_state()で状態を差し替えられることを検証します。
def test_get_state_returns_copy(toy):
    state = toy.get_state()
    state.pc = 0x0003
    assert toy.get_state().pc == 0x0000

    toy.restore_state(state)
    state.pc = 0x0000
    assert toy.get_state().pc == 0x0003
    assert toy.step() == 4


def test_reset_recreates_initial_state(toy):
    toy.step()
    toy.reset()
    assert toy.get_state() == ToyState()


# @intent:test_case_trace trace()が実行後の状態、命令、累計サイクル、バスアクティビティを記録することを検証します。
def test_trace_collects_snapshot(toy):
    toy.bus.read(0x0010)  # 事前のアクセスはスナップショットに含まれない
    snapshot = toy.trace()

    assert snapshot.state.pc == 1
    assert snapshot.operation.mnemonic == "ADD"
    assert snapshot.metadata.cycle_count == 2
    assert snapshot.metadata.symbol_info == "ADD #2"
    assert [(a.address, a.access_type) for a in snapshot.bus_activity] == [(0x0000, BusAccessType.READ)]

    # スナップショットの状態は独立コピー
    snapshot.state.pc = 0x0042
    assert toy.get_state().pc == 1
