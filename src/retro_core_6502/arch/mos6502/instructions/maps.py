# src/retro_core_6502/arch/mos6502/instructions/maps.py
"""
MOS 6502 命令テーブルとデコード/実行ロジック。

オペコード0x00-0xFFの全てに命令記述子が存在する。公式命令以外のオペコードは
フォールバック記述子 (NOP*) に解決され、例外を送出することはない。
"""
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from retro_core_6502.transport.bus import AbstractBus
from retro_core_6502.core.cycles import CycleAccountant
from retro_core_6502.core.snapshot import Operation
from retro_core_6502.arch.mos6502.state import Mos6502CpuState
from retro_core_6502.arch.mos6502.instructions import load, alu, control
from retro_core_6502.arch.mos6502.instructions.base import (
    AddressingMode, AddressingResult, fetch_byte, resolve,
)

logger = logging.getLogger(__name__)

# Execution Function Type: 戻り値は追加サイクル数 (分岐命令) または None
ExecFunc = Callable[[Mos6502CpuState, AbstractBus, AddressingResult], Optional[int]]

IMP = AddressingMode.IMPLIED
ACC = AddressingMode.ACCUMULATOR
IMM = AddressingMode.IMMEDIATE
ZP = AddressingMode.ZERO_PAGE
ZPX = AddressingMode.ZERO_PAGE_X
ZPY = AddressingMode.ZERO_PAGE_Y
ABS = AddressingMode.ABSOLUTE
ABX = AddressingMode.ABSOLUTE_X
ABY = AddressingMode.ABSOLUTE_Y
IND = AddressingMode.INDIRECT
IZX = AddressingMode.INDEXED_INDIRECT
IZY = AddressingMode.INDIRECT_INDEXED
REL = AddressingMode.RELATIVE


# @intent:responsibility オペコード1つ分の不変の命令記述子。
@dataclass(frozen=True)
class InstructionDescriptor:
    opcode: int
    mnemonic: str
    mode: AddressingMode
    handler: ExecFunc
    base_cycles: int
    page_penalty: bool = False  # ページ交差時に+1サイクルされるか
    documented: bool = True

    @property
    def length(self) -> int:
        return 1 + self.mode.operand_length


# Opcode Entry: (Mnemonic, Addressing Mode, Execution Function, Base Cycles)
OpcodeEntry = Tuple[str, AddressingMode, ExecFunc, int]

DOCUMENTED_OPCODES: Dict[int, OpcodeEntry] = {
    # --- Load/Store/Transfer ---
    0xA9: ("LDA", IMM, load.lda, 2),
    0xA5: ("LDA", ZP, load.lda, 3),
    0xB5: ("LDA", ZPX, load.lda, 4),
    0xAD: ("LDA", ABS, load.lda, 4),
    0xBD: ("LDA", ABX, load.lda, 4),
    0xB9: ("LDA", ABY, load.lda, 4),
    0xA1: ("LDA", IZX, load.lda, 6),
    0xB1: ("LDA", IZY, load.lda, 5),

    0xA2: ("LDX", IMM, load.ldx, 2),
    0xA6: ("LDX", ZP, load.ldx, 3),
    0xB6: ("LDX", ZPY, load.ldx, 4),
    0xAE: ("LDX", ABS, load.ldx, 4),
    0xBE: ("LDX", ABY, load.ldx, 4),

    0xA0: ("LDY", IMM, load.ldy, 2),
    0xA4: ("LDY", ZP, load.ldy, 3),
    0xB4: ("LDY", ZPX, load.ldy, 4),
    0xAC: ("LDY", ABS, load.ldy, 4),
    0xBC: ("LDY", ABX, load.ldy, 4),

    0x85: ("STA", ZP, load.sta, 3),
    0x95: ("STA", ZPX, load.sta, 4),
    0x8D: ("STA", ABS, load.sta, 4),
    0x9D: ("STA", ABX, load.sta, 5),
    0x99: ("STA", ABY, load.sta, 5),
    0x81: ("STA", IZX, load.sta, 6),
    0x91: ("STA", IZY, load.sta, 6),

    0x86: ("STX", ZP, load.stx, 3),
    0x96: ("STX", ZPY, load.stx, 4),
    0x8E: ("STX", ABS, load.stx, 4),

    0x84: ("STY", ZP, load.sty, 3),
    0x94: ("STY", ZPX, load.sty, 4),
    0x8C: ("STY", ABS, load.sty, 4),

    0xAA: ("TAX", IMP, load.tax, 2),
    0xA8: ("TAY", IMP, load.tay, 2),
    0x8A: ("TXA", IMP, load.txa, 2),
    0x98: ("TYA", IMP, load.tya, 2),
    0x9A: ("TXS", IMP, load.txs, 2),
    0xBA: ("TSX", IMP, load.tsx, 2),

    # --- ALU Operations ---
    0x69: ("ADC", IMM, alu.adc, 2),
    0x65: ("ADC", ZP, alu.adc, 3),
    0x75: ("ADC", ZPX, alu.adc, 4),
    0x6D: ("ADC", ABS, alu.adc, 4),
    0x7D: ("ADC", ABX, alu.adc, 4),
    0x79: ("ADC", ABY, alu.adc, 4),
    0x61: ("ADC", IZX, alu.adc, 6),
    0x71: ("ADC", IZY, alu.adc, 5),

    0xE9: ("SBC", IMM, alu.sbc, 2),
    0xE5: ("SBC", ZP, alu.sbc, 3),
    0xF5: ("SBC", ZPX, alu.sbc, 4),
    0xED: ("SBC", ABS, alu.sbc, 4),
    0xFD: ("SBC", ABX, alu.sbc, 4),
    0xF9: ("SBC", ABY, alu.sbc, 4),
    0xE1: ("SBC", IZX, alu.sbc, 6),
    0xF1: ("SBC", IZY, alu.sbc, 5),

    0xC9: ("CMP", IMM, alu.cmp, 2),
    0xC5: ("CMP", ZP, alu.cmp, 3),
    0xD5: ("CMP", ZPX, alu.cmp, 4),
    0xCD: ("CMP", ABS, alu.cmp, 4),
    0xDD: ("CMP", ABX, alu.cmp, 4),
    0xD9: ("CMP", ABY, alu.cmp, 4),
    0xC1: ("CMP", IZX, alu.cmp, 6),
    0xD1: ("CMP", IZY, alu.cmp, 5),

    0xE0: ("CPX", IMM, alu.cpx, 2),
    0xE4: ("CPX", ZP, alu.cpx, 3),
    0xEC: ("CPX", ABS, alu.cpx, 4),

    0xC0: ("CPY", IMM, alu.cpy, 2),
    0xC4: ("CPY", ZP, alu.cpy, 3),
    0xCC: ("CPY", ABS, alu.cpy, 4),

    0x29: ("AND", IMM, alu.and_, 2),
    0x25: ("AND", ZP, alu.and_, 3),
    0x35: ("AND", ZPX, alu.and_, 4),
    0x2D: ("AND", ABS, alu.and_, 4),
    0x3D: ("AND", ABX, alu.and_, 4),
    0x39: ("AND", ABY, alu.and_, 4),
    0x21: ("AND", IZX, alu.and_, 6),
    0x31: ("AND", IZY, alu.and_, 5),

    0x09: ("ORA", IMM, alu.ora, 2),
    0x05: ("ORA", ZP, alu.ora, 3),
    0x15: ("ORA", ZPX, alu.ora, 4),
    0x0D: ("ORA", ABS, alu.ora, 4),
    0x1D: ("ORA", ABX, alu.ora, 4),
    0x19: ("ORA", ABY, alu.ora, 4),
    0x01: ("ORA", IZX, alu.ora, 6),
    0x11: ("ORA", IZY, alu.ora, 5),

    0x49: ("EOR", IMM, alu.eor, 2),
    0x45: ("EOR", ZP, alu.eor, 3),
    0x55: ("EOR", ZPX, alu.eor, 4),
    0x4D: ("EOR", ABS, alu.eor, 4),
    0x5D: ("EOR", ABX, alu.eor, 4),
    0x59: ("EOR", ABY, alu.eor, 4),
    0x41: ("EOR", IZX, alu.eor, 6),
    0x51: ("EOR", IZY, alu.eor, 5),

    0x24: ("BIT", ZP, alu.bit, 3),
    0x2C: ("BIT", ABS, alu.bit, 4),

    # Shift / Rotate
    0x0A: ("ASL", ACC, alu.asl, 2),
    0x06: ("ASL", ZP, alu.asl, 5),
    0x16: ("ASL", ZPX, alu.asl, 6),
    0x0E: ("ASL", ABS, alu.asl, 6),
    0x1E: ("ASL", ABX, alu.asl, 7),

    0x4A: ("LSR", ACC, alu.lsr, 2),
    0x46: ("LSR", ZP, alu.lsr, 5),
    0x56: ("LSR", ZPX, alu.lsr, 6),
    0x4E: ("LSR", ABS, alu.lsr, 6),
    0x5E: ("LSR", ABX, alu.lsr, 7),

    0x2A: ("ROL", ACC, alu.rol, 2),
    0x26: ("ROL", ZP, alu.rol, 5),
    0x36: ("ROL", ZPX, alu.rol, 6),
    0x2E: ("ROL", ABS, alu.rol, 6),
    0x3E: ("ROL", ABX, alu.rol, 7),

    0x6A: ("ROR", ACC, alu.ror, 2),
    0x66: ("ROR", ZP, alu.ror, 5),
    0x76: ("ROR", ZPX, alu.ror, 6),
    0x6E: ("ROR", ABS, alu.ror, 6),
    0x7E: ("ROR", ABX, alu.ror, 7),

    # INC/DEC
    0xE6: ("INC", ZP, alu.inc, 5),
    0xF6: ("INC", ZPX, alu.inc, 6),
    0xEE: ("INC", ABS, alu.inc, 6),
    0xFE: ("INC", ABX, alu.inc, 7),

    0xC6: ("DEC", ZP, alu.dec, 5),
    0xD6: ("DEC", ZPX, alu.dec, 6),
    0xCE: ("DEC", ABS, alu.dec, 6),
    0xDE: ("DEC", ABX, alu.dec, 7),

    0xE8: ("INX", IMP, alu.inx, 2),
    0xCA: ("DEX", IMP, alu.dex, 2),
    0xC8: ("INY", IMP, alu.iny, 2),
    0x88: ("DEY", IMP, alu.dey, 2),

    # --- Control Instructions ---
    # Branch: +1 if branch taken, +2 if taken and page crossed
    0x90: ("BCC", REL, control.bcc, 2),
    0xB0: ("BCS", REL, control.bcs, 2),
    0xF0: ("BEQ", REL, control.beq, 2),
    0xD0: ("BNE", REL, control.bne, 2),
    0x30: ("BMI", REL, control.bmi, 2),
    0x10: ("BPL", REL, control.bpl, 2),
    0x50: ("BVC", REL, control.bvc, 2),
    0x70: ("BVS", REL, control.bvs, 2),

    # Jump / Subroutine
    0x4C: ("JMP", ABS, control.jmp, 3),
    0x6C: ("JMP", IND, control.jmp, 5),
    0x20: ("JSR", ABS, control.jsr, 6),
    0x60: ("RTS", IMP, control.rts, 6),

    # Stack
    0x48: ("PHA", IMP, control.pha, 3),
    0x08: ("PHP", IMP, control.php, 3),
    0x68: ("PLA", IMP, control.pla, 4),
    0x28: ("PLP", IMP, control.plp, 4),

    # Flags
    0x18: ("CLC", IMP, control.clc, 2),
    0x38: ("SEC", IMP, control.sec, 2),
    0x58: ("CLI", IMP, control.cli, 2),
    0x78: ("SEI", IMP, control.sei, 2),
    0xB8: ("CLV", IMP, control.clv, 2),
    0xD8: ("CLD", IMP, control.cld, 2),
    0xF8: ("SED", IMP, control.sed, 2),

    # System
    0xEA: ("NOP", IMP, control.nop, 2),
    0x00: ("BRK", IMP, control.brk, 7),
    0x40: ("RTI", IMP, control.rti, 6),
}

# @intent:constant ページ交差時に+1サイクルとなる読み出し系命令。
#                  ストア命令や読み出し・変更・書き込み命令は同じモードでも常に固定サイクル。
PAGE_PENALTY_MNEMONICS = frozenset({
    "LDA", "LDX", "LDY", "EOR", "AND", "ORA", "ADC", "SBC", "CMP",
})
_PAGE_PENALTY_MODES = frozenset({ABX, ABY, IZY})

# --- Undefined opcode fallback ---
# @intent:note 未定義オペコードは、オペコード行列上の位置 (aaabbbcc の bbb と cc) が示す
#              アドレッシングモードのオペランドバイトを読み飛ばすだけのNOPとして扱う。
#              命令長が実機と一致するため、命令ストリームの整列が崩れない。
#              サイクル数はモードごとの固定値で、ページ交差ペナルティはない。
#              JAM (KIL) 系オペコードは停止させず、1バイト2サイクルのNOPとする。
FALLBACK_MNEMONIC = "NOP*"

_GROUP_ONE_MODES = (IZX, ZP, IMM, ABS, IZY, ZPX, ABY, ABX)
_GROUP_ZERO_MODES = (IMM, ZP, IMP, ABS, REL, ZPX, IMP, ABX)
_GROUP_TWO_MODES = (IMM, ZP, IMP, ABS, IMP, ZPX, IMP, ABX)

FALLBACK_CYCLES: Dict[AddressingMode, int] = {
    IMP: 2, IMM: 2,
    ZP: 3, ZPX: 4, ZPY: 4,
    ABS: 4, ABX: 4, ABY: 4,
    IZX: 6, IZY: 5,
}


def _fallback_mode(opcode: int) -> AddressingMode:
    group = opcode & 0x03
    column = (opcode >> 2) & 0x07
    if group in (0x01, 0x03):
        if opcode in (0x97, 0xB7):
            return ZPY
        if opcode in (0x9F, 0xBF):
            return ABY
        return _GROUP_ONE_MODES[column]
    if group == 0x00:
        return _GROUP_ZERO_MODES[column]
    # SHX abs,Y は列7 (abs,X) の例外
    if opcode == 0x9E:
        return ABY
    # group 2: 行0の上半分 (0x02-0x62) と列4は JAM
    if column == 0 and opcode < 0x80:
        return IMP
    return _GROUP_TWO_MODES[column]


def _fallback_descriptor(opcode: int) -> InstructionDescriptor:
    mode = _fallback_mode(opcode)
    return InstructionDescriptor(
        opcode=opcode,
        mnemonic=FALLBACK_MNEMONIC,
        mode=mode,
        handler=control.nop,
        base_cycles=FALLBACK_CYCLES[mode],
        documented=False,
    )


# @intent:responsibility 256エントリの命令テーブルを構築する。
# @intent:note decimal_enabled=False は10進モードを持たない派生品 (Ricoh 2A03) 用。
def build_opcode_table(decimal_enabled: bool = True) -> Tuple[InstructionDescriptor, ...]:
    table = []
    for opcode in range(0x100):
        entry = DOCUMENTED_OPCODES.get(opcode)
        if entry is None:
            table.append(_fallback_descriptor(opcode))
            continue
        mnemonic, mode, handler, cycles = entry
        if not decimal_enabled:
            if handler is alu.adc:
                handler = alu.adc_binary
            elif handler is alu.sbc:
                handler = alu.sbc_binary
        table.append(InstructionDescriptor(
            opcode=opcode,
            mnemonic=mnemonic,
            mode=mode,
            handler=handler,
            base_cycles=cycles,
            page_penalty=mnemonic in PAGE_PENALTY_MNEMONICS and mode in _PAGE_PENALTY_MODES,
        ))
    return tuple(table)


OPCODE_TABLE = build_opcode_table()
BINARY_ONLY_OPCODE_TABLE = build_opcode_table(decimal_enabled=False)


def lookup(opcode: int, table: Tuple[InstructionDescriptor, ...] = OPCODE_TABLE) -> InstructionDescriptor:
    return table[opcode & 0xFF]


# @intent:responsibility 未定義オペコードのオペランドを、実効アドレスの解決やメモリ参照なしに読み飛ばす。
def _skip_operand(mode: AddressingMode, state: Mos6502CpuState, bus: AbstractBus) -> AddressingResult:
    operand_bytes = tuple(fetch_byte(state, bus) for _ in range(mode.operand_length))
    operand_str = "".join(f"{b:02X}" for b in reversed(operand_bytes))
    return AddressingResult(mode, operand_str=f"${operand_str}" if operand_str else "",
                            operand_bytes=operand_bytes)


# @intent:responsibility オペコードをデコードし、オペランドを解決したOperationを返す。
# @intent:pre-condition state.pc はオペコードの次のバイトを指していること。
# @intent:post-condition state.pc は命令の次を指す。解決結果は Operation.context に格納される。
def decode_opcode(opcode: int, state: Mos6502CpuState, bus: AbstractBus,
                  table: Tuple[InstructionDescriptor, ...] = OPCODE_TABLE) -> Operation:
    descriptor = lookup(opcode, table)
    if descriptor.documented:
        operand = resolve(descriptor.mode, state, bus)
    else:
        logger.debug("Undefined opcode $%02X at $%04X treated as %s", opcode,
                     (state.pc - 1) & 0xFFFF, FALLBACK_MNEMONIC)
        operand = _skip_operand(descriptor.mode, state, bus)

    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic=descriptor.mnemonic,
        operands=[operand.operand_str] if operand.operand_str else [],
        operand_bytes=list(operand.operand_bytes),
        cycle_count=descriptor.base_cycles,
        length=descriptor.length,
        context=(descriptor, operand),
    )


# @intent:responsibility デコード済みの命令を実行し、ペナルティ込みのサイクル数を返す。
def execute_instruction(operation: Operation, state: Mos6502CpuState, bus: AbstractBus) -> int:
    descriptor, operand = operation.context
    extra = descriptor.handler(state, bus, operand) or 0
    return CycleAccountant.instruction_cycles(
        descriptor.base_cycles, operand.page_crossed, descriptor.page_penalty, extra
    )
