# src/retro_core_6502/arch/mos6502/instructions/alu.py
"""
MOS 6502 算術論理演算命令 (ALU)。

10進モード (D=1) のADC/SBCはNMOS 6502の挙動に合わせる:
  ADC: Cは10進補正後の結果から、Zは2進加算の結果から、
       N と V は下位ニブル補正後・上位ニブル補正前の中間結果から求める。
  SBC: Aには10進補正した結果を格納し、N V Z C は2進減算と同じ値とする。
"""
from retro_core_6502.transport.bus import AbstractBus
from retro_core_6502.arch.mos6502.state import Mos6502CpuState
from retro_core_6502.arch.mos6502.instructions.base import AddressingResult, read_operand


# @intent:responsibility 読み出し→演算→書き戻しの共通処理 (シフト/ローテートのメモリ・アキュムレータ両対応)。
def _read_modify_write(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult, func) -> None:
    if operand.is_accumulator:
        state.a = func(state.a)
        return
    val = bus.read(operand.address)
    bus.write(operand.address, func(val))


# --- Logical Operations (AND, ORA, EOR, BIT) ---

def and_(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    state.a = state.a & read_operand(state, bus, operand)
    state.set_nz(state.a)


def ora(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    state.a = state.a | read_operand(state, bus, operand)
    state.set_nz(state.a)


def eor(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    state.a = state.a ^ read_operand(state, bus, operand)
    state.set_nz(state.a)


# @intent:note BIT命令はメモリの値のビット6, 7をそれぞれV, Nフラグにコピーし、A & Mの結果でZフラグを設定する。
def bit(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    val = read_operand(state, bus, operand)
    state.update_flags(z=(state.a & val) == 0, v=(val & 0x40) != 0, n=(val & 0x80) != 0)


# --- Arithmetic Operations (ADC, SBC) ---

# @intent:responsibility 標準バイナリ加算ロジック
# @intent:note V は両オペランドの符号が一致し、結果の符号がそれと異なる場合にセットされる。
def _add_binary(state: Mos6502CpuState, val: int) -> None:
    a = state.a
    res_wide = a + val + (1 if state.flag_c else 0)
    res = res_wide & 0xFF
    state.update_flags(c=res_wide > 0xFF, v=(~(a ^ val) & (a ^ res) & 0x80) != 0)
    state.a = res
    state.set_nz(res)


# @intent:responsibility BCD加算ロジック (NMOS)
def _add_decimal(state: Mos6502CpuState, val: int) -> None:
    a = state.a
    c = 1 if state.flag_c else 0
    binary = (a + val + c) & 0xFF

    lo = (a & 0x0F) + (val & 0x0F) + c
    if lo > 0x09:
        lo = ((lo + 0x06) & 0x0F) + 0x10
    tmp = (a & 0xF0) + (val & 0xF0) + lo

    # N, V は上位ニブル補正前の値から
    n = (tmp & 0x80) != 0
    v = (~(a ^ val) & (a ^ tmp) & 0x80) != 0
    if tmp >= 0xA0:
        tmp += 0x60

    state.a = tmp & 0xFF
    state.update_flags(c=tmp > 0xFF, z=binary == 0, n=n, v=v)


# @intent:responsibility BCD減算ロジック (NMOS)
def _subtract_decimal(state: Mos6502CpuState, val: int) -> None:
    a = state.a
    c = 1 if state.flag_c else 0

    lo = (a & 0x0F) - (val & 0x0F) + c - 1
    if lo < 0:
        lo = ((lo - 0x06) & 0x0F) - 0x10
    tmp = (a & 0xF0) - (val & 0xF0) + lo
    if tmp < 0:
        tmp -= 0x60

    # フラグは2進減算と同一
    _add_binary(state, val ^ 0xFF)
    state.a = tmp & 0xFF


def adc(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    val = read_operand(state, bus, operand)
    if state.flag_d:
        _add_decimal(state, val)
    else:
        _add_binary(state, val)


# @intent:note SBC A, M は ADC A, ~M と等価 (C=1 は借りなし)。
def sbc(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    val = read_operand(state, bus, operand)
    if state.flag_d:
        _subtract_decimal(state, val)
    else:
        _add_binary(state, val ^ 0xFF)


# @intent:responsibility 10進モードを持たない派生品 (Ricoh 2A03) 用。Dフラグを無視する。
def adc_binary(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    _add_binary(state, read_operand(state, bus, operand))


def sbc_binary(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    _add_binary(state, read_operand(state, bus, operand) ^ 0xFF)


# --- Compare Operations (CMP, CPX, CPY) ---
# @intent:note 比較は結果を格納しない減算。N, Z, C のみ更新し、Dフラグに関係なく常に2進。
#              C は Reg >= Val (借りなし) の時にセット。

def _compare(state: Mos6502CpuState, reg_val: int, mem_val: int) -> None:
    diff = reg_val - mem_val
    state.flag_c = diff >= 0
    state.set_nz(diff & 0xFF)


def cmp(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    _compare(state, state.a, read_operand(state, bus, operand))


def cpx(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    _compare(state, state.x, read_operand(state, bus, operand))


def cpy(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    _compare(state, state.y, read_operand(state, bus, operand))


# --- Shift / Rotate Operations (ASL, LSR, ROL, ROR) ---
# @intent:note 押し出されたビットは常にCへ。ASL/LSRは0を、ROL/RORは *実行前の* Cを押し込む。

def asl(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    def shift(val: int) -> int:
        res = (val << 1) & 0xFF
        state.flag_c = (val & 0x80) != 0
        state.set_nz(res)
        return res
    _read_modify_write(state, bus, operand, shift)


def lsr(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    def shift(val: int) -> int:
        res = val >> 1
        state.flag_c = (val & 0x01) != 0
        state.set_nz(res)
        return res
    _read_modify_write(state, bus, operand, shift)


def rol(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    old_c = 1 if state.flag_c else 0

    def rotate(val: int) -> int:
        res = ((val << 1) | old_c) & 0xFF
        state.flag_c = (val & 0x80) != 0
        state.set_nz(res)
        return res
    _read_modify_write(state, bus, operand, rotate)


def ror(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    old_c = 1 if state.flag_c else 0

    def rotate(val: int) -> int:
        res = (val >> 1) | (old_c << 7)
        state.flag_c = (val & 0x01) != 0
        state.set_nz(res)
        return res
    _read_modify_write(state, bus, operand, rotate)


# --- Increment / Decrement (INC, DEC, INX, DEX, INY, DEY) ---

def inc(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    def step(val: int) -> int:
        res = (val + 1) & 0xFF
        state.set_nz(res)
        return res
    _read_modify_write(state, bus, operand, step)


def dec(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    def step(val: int) -> int:
        res = (val - 1) & 0xFF
        state.set_nz(res)
        return res
    _read_modify_write(state, bus, operand, step)


def inx(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    state.x = state.x + 1
    state.set_nz(state.x)


def dex(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    state.x = state.x - 1
    state.set_nz(state.x)


def iny(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    state.y = state.y + 1
    state.set_nz(state.y)


def dey(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> None:
    state.y = state.y - 1
    state.set_nz(state.y)
