# src/retro_core_6502/arch/mos6502/instructions/control.py
"""
MOS 6502 制御系命令 (Branch, Jump, Stack, Flags, NOP, BRK/RTI)。
"""
from typing import Optional

from retro_core_6502.transport.bus import AbstractBus
from retro_core_6502.arch.mos6502 import interrupts
from retro_core_6502.arch.mos6502.state import Mos6502CpuState, B_FLAG
from retro_core_6502.arch.mos6502.instructions.base import AddressingResult

# --- Branch Instructions ---

# @intent:responsibility 条件分岐の共通処理。
# @intent:return 追加サイクル数。不成立 0、成立 +1、成立かつページ交差 +2。
# @intent:note 不成立時は何もしない (PCは既にオペランドの次を指している)。
def _branch(state: Mos6502CpuState, operand: AddressingResult, condition: bool) -> int:
    if not condition:
        return 0
    state.pc = operand.address
    return 2 if operand.page_crossed else 1


def bcc(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> int:
    return _branch(state, operand, not state.flag_c)


def bcs(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> int:
    return _branch(state, operand, state.flag_c)


def beq(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> int:
    return _branch(state, operand, state.flag_z)


def bne(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> int:
    return _branch(state, operand, not state.flag_z)


def bmi(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> int:
    return _branch(state, operand, state.flag_n)


def bpl(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> int:
    return _branch(state, operand, not state.flag_n)


def bvc(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> int:
    return _branch(state, operand, not state.flag_v)


def bvs(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> int:
    return _branch(state, operand, state.flag_v)


# --- Jump Instructions ---

def jmp(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    state.pc = operand.address


# @intent:note スタックに積むのは「JSR命令の最後のバイトのアドレス」(= 次の命令 - 1)。
def jsr(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    interrupts.push_word(state, bus, (state.pc - 1) & 0xFFFF)
    state.pc = operand.address


# @intent:note プルしたアドレスはJSRの最後のバイトなので、+1して次の命令へ戻る。
def rts(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    state.pc = interrupts.pull_word(state, bus) + 1


# --- Stack Operations (PHA, PHP, PLA, PLP) ---

def pha(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    interrupts.push(state, bus, state.a)


# @intent:note PHPはB(ビット4)とビット5を1にしてプッシュする。
def php(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    interrupts.push(state, bus, state.pack_p() | B_FLAG)


def pla(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    state.a = interrupts.pull(state, bus)
    state.set_nz(state.a)


# @intent:note Bフラグはレジスタ上に実体を持たないため、プルした値のビット4は捨てる。ビット5は常に1。
def _pull_status(state: Mos6502CpuState, bus: AbstractBus) -> None:
    state.unpack_p(interrupts.pull(state, bus) & ~B_FLAG)


def plp(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    _pull_status(state, bus)


# --- Flag Operations (CLC, SEC, etc) ---

def clc(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    state.flag_c = False


def sec(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    state.flag_c = True


def cli(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    state.flag_i = False


def sei(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    state.flag_i = True


def clv(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    state.flag_v = False


def cld(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    state.flag_d = False


def sed(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    state.flag_d = True


# --- System / Other ---

# @intent:note 未定義オペコードのフォールバックもこのハンドラを使う (オペランドは読み飛ばすだけ)。
def nop(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> Optional[int]:
    return None


def brk(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    interrupts.brk(state, bus)


def rti(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    _pull_status(state, bus)
    state.pc = interrupts.pull_word(state, bus)
