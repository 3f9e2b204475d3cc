# src/retro_core_6502/arch/mos6502/instructions/load.py
"""
MOS 6502 転送系命令 (Load/Store/Transfer)。
"""
from retro_core_6502.transport.bus import AbstractBus
from retro_core_6502.arch.mos6502.state import Mos6502CpuState
from retro_core_6502.arch.mos6502.instructions.base import AddressingResult, read_operand

# --- Load ---
# @intent:responsibility メモリからレジスタへロードし、N, Zフラグを更新。

def lda(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    state.a = read_operand(state, bus, operand)
    state.set_nz(state.a)


def ldx(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    state.x = read_operand(state, bus, operand)
    state.set_nz(state.x)


def ldy(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    state.y = read_operand(state, bus, operand)
    state.set_nz(state.y)


# --- Store ---
# @intent:responsibility レジスタの内容をメモリへストア。フラグ変化なし。

def sta(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    bus.write(operand.address, state.a)


def stx(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    bus.write(operand.address, state.x)


def sty(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    bus.write(operand.address, state.y)


# --- Register Transfers (TAX, TAY, TXA, TYA, TSX, TXS) ---

def tax(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    state.x = state.a
    state.set_nz(state.x)


def tay(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    state.y = state.a
    state.set_nz(state.y)


def txa(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    state.a = state.x
    state.set_nz(state.a)


def tya(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    state.a = state.y
    state.set_nz(state.a)


# @intent:note TSXはSP(8bitオフセット)からXへ転送。N, Z更新あり。
def tsx(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    state.x = state.sp
    state.set_nz(state.x)


# @intent:note TXSはXからSPへ転送。N, Zフラグは更新 *されない*。
def txs(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    state.sp = state.x
