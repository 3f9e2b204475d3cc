# tests/arch/mos6502/test_cpu.py
"""
Mos6502Cpu の外部インターフェース (step, reset, 状態の取得・設定, トレース) のテスト。
"""
import pytest

from retro_core_6502.transport.bus import BusAccessType, BusError, Bus, RAM
from retro_core_6502.arch.mos6502 import Mos6502Cpu, Mos6502CpuState
from retro_core_6502.arch.mos6502 import interrupts

# @intent:test_suite 命令単位の実行とサイクル数、リセットシーケンス、状態スナップショットを検証します。


def _set_vector(bus, vector, target):
    bus.write(vector, target & 0xFF)
    bus.write(vector + 1, target >> 8)


# @intent:test_case_lda_imm LDA #imm が2サイクルでAを設定し、PCを2進めることを検証します。
def test_lda_immediate(load_program):
    cpu = load_program(0x0200, [0xA9, 0x42])
    assert cpu.step() == 2
    state = cpu.get_state()
    assert state.a == 0x42
    assert state.pc == 0x0202
    assert not state.flag_z and not state.flag_n


def test_inx_wraps_to_zero(load_program):
    cpu = load_program(0x0200, [0xE8], x=0xFF)
    cpu.step()
    assert cpu.get_state().x == 0x00
    assert cpu.get_flag_state()["Z"]
    assert not cpu.get_flag_state()["N"]


# @intent:test_case_stack_wrap S=$00 でのPHAは $0100 に書き込み、Sが$FFにラップすることを検証します。
def test_pha_with_empty_stack_wraps(load_program, bus):
    cpu = load_program(0x0200, [0x48], a=0x77, sp=0x00)
    assert cpu.step() == 3
    assert bus.peek(0x0100) == 0x77
    assert cpu.get_state().sp == 0xFF


# @intent:test_case_page_penalty 読み出し命令はページ交差で+1サイクル、ストア命令は固定サイクルであることを検証します。
def test_page_cross_penalty_for_loads_only(load_program):
    cpu = load_program(0x0200, [0xBD, 0xFF, 0x02], x=0x01)  # LDA $02FF,X
    assert cpu.step() == 5

    cpu = load_program(0x0200, [0xBD, 0x00, 0x02], x=0x01)  # LDA $0200,X
    assert cpu.step() == 4

    cpu = load_program(0x0200, [0x9D, 0xFF, 0x02], x=0x01)  # STA $02FF,X
    assert cpu.step() == 5

    cpu = load_program(0x0200, [0x9D, 0x00, 0x02], x=0x01)  # STA $0200,X
    assert cpu.step() == 5


def test_indirect_indexed_page_penalty(load_program, bus):
    bus.write(0x0040, 0xFF)
    bus.write(0x0041, 0x30)
    cpu = load_program(0x0200, [0xB1, 0x40], y=0x01)
    assert cpu.step() == 6
    cpu = load_program(0x0200, [0xB1, 0x40], y=0x00)
    assert cpu.step() == 5


# @intent:test_case_branch 分岐は不成立2、成立3、成立かつページ交差4サイクルであることを検証します。
@pytest.mark.parametrize("address, zero, expected_pc, expected_cycles", [
    (0x0200, False, 0x0202, 2),
    (0x0200, True, 0x0207, 3),
    (0x02FB, True, 0x0302, 4),
])
def test_branch_cycles(load_program, address, zero, expected_pc, expected_cycles):
    cpu = load_program(address, [0xF0, 0x05], p=0x22 if zero else 0x20)
    assert cpu.step() == expected_cycles
    assert cpu.get_state().pc == expected_pc


def test_branch_backward(load_program):
    cpu = load_program(0x0210, [0xD0, 0xFE], p=0x20)  # BNE * (自分自身へ)
    assert cpu.step() == 3
    assert cpu.get_state().pc == 0x0210


def test_jmp_indirect_page_wrap_quirk(load_program, bus):
    bus.write(0x30FF, 0x00)
    bus.write(0x3000, 0x40)
    bus.write(0x3100, 0x50)
    cpu = load_program(0x0200, [0x6C, 0xFF, 0x30])
    assert cpu.step() == 5
    assert cpu.get_state().pc == 0x4000


# @intent:test_case_brk BRKがPC+2, P|B を積み、I=1にしてIRQベクタへ7サイクルで遷移することを検証します。
def test_brk(load_program, bus):
    _set_vector(bus, interrupts.IRQ_VECTOR, 0x8000)
    cpu = load_program(0x1000, [0x00, 0xFF], p=0x20)

    assert cpu.step() == 7
    state = cpu.get_state()
    assert bus.peek(0x01FD) == 0x10
    assert bus.peek(0x01FC) == 0x02
    assert bus.peek(0x01FB) == 0x30
    assert state.sp == 0xFA
    assert state.pc == 0x8000
    assert state.flag_i
    assert cpu.last_operation.mnemonic == "BRK"


# @intent:test_case_reset リセットがベクタからPCを読み、I=1, D=0, S=$FD とすることを検証します。
def test_reset_reads_vector(cpu, bus):
    _set_vector(bus, interrupts.RESET_VECTOR, 0xC000)
    cpu.restore_state(Mos6502CpuState(pc=0x1234, sp=0x10, a=0x55, p=0xFF))

    assert cpu.reset() is None
    state = cpu.get_state()
    assert state.pc == 0xC000
    assert state.sp == 0xFD
    assert state.a == 0
    assert state.flag_i
    assert not state.flag_d
    assert state.p & 0x20
    assert cpu.cycle_count == interrupts.RESET_CYCLES
    assert cpu.instruction_count == 0


# @intent:test_case_reset_cycles リセットは累計サイクルを消去せず、リセット分のサイクルを加算することを検証します。
def test_reset_keeps_running_cycle_total(load_program, bus):
    _set_vector(bus, interrupts.RESET_VECTOR, 0x0200)
    cpu = load_program(0x0200, [0xEA])
    cpu.step()

    cpu.reset()
    cpu.reset()
    assert cpu.cycle_count == 2 + 2 * interrupts.RESET_CYCLES
    assert cpu.instruction_count == 1


# @intent:test_case_undefined 未定義オペコードは例外を送出せず、命令長分だけPCを進めることを検証します。
def test_undefined_opcode_does_not_raise(load_program):
    cpu = load_program(0x0200, [0x02, 0x0C, 0x34, 0x12, 0xEA])
    assert cpu.step() == 2
    assert cpu.get_state().pc == 0x0201
    assert cpu.step() == 4
    assert cpu.get_state().pc == 0x0204
    assert cpu.last_operation.mnemonic == "NOP*"


# @intent:test_case_state get_state()は独立コピーを返し、restore_state()はPのビット5を強制することを検証します。
def test_state_snapshot_is_independent(cpu):
    state = cpu.get_state()
    state.a = 0x99
    assert cpu.get_state().a == 0x00

    cpu.restore_state(Mos6502CpuState(pc=0x0300, p=0x00))
    assert cpu.get_state().p == 0x20
    assert cpu.get_register_map() == {"PC": 0x0300, "S": 0xFD, "P": 0x20, "A": 0, "X": 0, "Y": 0}


def test_restore_state_preserves_interrupt_latches(cpu):
    cpu.restore_state(Mos6502CpuState(irq_pending=True, nmi_pending=True))
    state = cpu.get_state()
    assert state.irq_pending and state.nmi_pending


def test_flag_state(load_program):
    cpu = load_program(0x0200, [], p=0xC3)
    assert cpu.get_flag_state() == {
        "N": True, "V": True, "B": False, "D": False, "I": False, "Z": True, "C": True,
    }


# @intent:test_case_run run()が要求サイクル数に達するまで命令を実行することを検証します。
def test_run_counts_cycles(load_program):
    cpu = load_program(0x0200, [0xEA] * 8)
    assert cpu.run(5) == 6
    assert cpu.instruction_count == 3
    assert cpu.cycle_count == 6
    assert cpu.get_state().pc == 0x0203


# @intent:test_case_activity_log step()/run()だけで駆動してもバスアクティビティログが蓄積しないことを検証します。
def test_run_keeps_bus_log_to_last_instruction(load_program, bus):
    cpu = load_program(0x0200, [0x4C, 0x00, 0x02])
    cpu.run(30000)

    # 最後のJMP absのオペコードとオペランド読み出しだけが残る
    log = bus.get_and_clear_activity_log()
    assert [a.address for a in log] == [0x0200, 0x0201, 0x0202]


def test_step_discards_log_from_host_accesses(load_program, bus):
    cpu = load_program(0x0200, [0xEA])
    bus.read(0x0010)
    cpu.step()
    assert [a.address for a in bus.get_and_clear_activity_log()] == [0x0200]


# @intent:test_case_trace trace()が実行した命令とバスアクティビティを含むスナップショットを返すことを検証します。
def test_trace_snapshot(load_program, bus):
    bus.write(0x0010, 0x00)
    cpu = load_program(0x0200, [0xA9, 0x10, 0x85, 0x10])

    snapshot = cpu.trace()
    assert snapshot.operation.mnemonic == "LDA"
    assert snapshot.operation.operands == ["#$10"]
    assert snapshot.metadata.symbol_info == "LDA #$10"
    assert snapshot.metadata.cycle_count == 2
    assert [a.address for a in snapshot.bus_activity] == [0x0200, 0x0201]

    snapshot = cpu.trace()
    writes = [a for a in snapshot.bus_activity if a.access_type is BusAccessType.WRITE]
    assert len(writes) == 1
    assert writes[0].address == 0x0010
    assert writes[0].data == 0x10
    assert writes[0].previous_data == 0x00
    assert snapshot.state.pc == 0x0204


# @intent:test_case_bus_error 未マップ領域からのフェッチはBusErrorとしてホストへ伝播することを検証します。
def test_unmapped_fetch_propagates_bus_error():
    bus = Bus()
    bus.register_device(0x0000, 0x01FF, RAM(0x200))
    cpu = Mos6502Cpu(bus)
    cpu.restore_state(Mos6502CpuState(pc=0x8000))
    with pytest.raises(BusError):
        cpu.step()


def test_open_bus_reads_execute_as_fill_value():
    bus = Bus(open_bus_value=0xEA)
    bus.register_device(0x0000, 0x01FF, RAM(0x200))
    cpu = Mos6502Cpu(bus)
    cpu.restore_state(Mos6502CpuState(pc=0x8000))
    assert cpu.step() == 2
    assert cpu.get_state().pc == 0x8001
