# src/retro_core_6502/arch/mos6502/instructions/base.py
"""
MOS 6502 アドレッシングモード解決ロジック。

各解決関数は PC が指すオペランドバイトを読み出して PC を進め、
実効アドレス (またはイミディエイト値) とページ境界交差の有無を返します。
"""
from enum import Enum
from typing import Callable, Dict, NamedTuple, Optional, Tuple

from retro_core_6502.transport.bus import AbstractBus
from retro_core_6502.arch.mos6502.state import Mos6502CpuState


# @intent:responsibility アドレッシングモードの種別とオペランド長を定義する。
class AddressingMode(Enum):
    IMPLIED = ("imp", 0)
    ACCUMULATOR = ("acc", 0)
    IMMEDIATE = ("imm", 1)
    ZERO_PAGE = ("zp", 1)
    ZERO_PAGE_X = ("zpx", 1)
    ZERO_PAGE_Y = ("zpy", 1)
    ABSOLUTE = ("abs", 2)
    ABSOLUTE_X = ("abx", 2)
    ABSOLUTE_Y = ("aby", 2)
    INDIRECT = ("ind", 2)
    INDEXED_INDIRECT = ("izx", 1)
    INDIRECT_INDEXED = ("izy", 1)
    RELATIVE = ("rel", 1)

    @property
    def operand_length(self) -> int:
        return self.value[1]


# @intent:responsibility アドレッシングモードの解決結果。
# address: 解決された実効アドレス (Implied/Accumulator/Immediateの場合はNone)
# value: Immediateの場合の値、それ以外はNone
# page_crossed: インデックス加算 (または分岐) でページ境界を跨いだか
# operand_str: トレース用のオペランド文字列表現
# operand_bytes: オペランドとしてフェッチされたバイト列
class AddressingResult(NamedTuple):
    mode: AddressingMode
    address: Optional[int] = None
    value: Optional[int] = None
    page_crossed: bool = False
    operand_str: str = ""
    operand_bytes: Tuple[int, ...] = ()

    @property
    def is_accumulator(self) -> bool:
        return self.mode is AddressingMode.ACCUMULATOR


# @intent:responsibility ページ境界交差判定。
def is_page_crossed(addr1: int, addr2: int) -> bool:
    return (addr1 & 0xFF00) != (addr2 & 0xFF00)


# @intent:responsibility PCの位置から1バイト読み出し、PCを進める。
def fetch_byte(state: Mos6502CpuState, bus: AbstractBus) -> int:
    value = bus.read(state.pc)
    state.pc = state.pc + 1
    return value


def _fetch_word(state: Mos6502CpuState, bus: AbstractBus) -> Tuple[int, int]:
    lo = fetch_byte(state, bus)
    hi = fetch_byte(state, bus)
    return lo, hi


# @intent:responsibility ゼロページ上の16bitポインタを読む。上位バイトもページ0内でラップする。
def _read_zero_page_word(bus: AbstractBus, ptr: int) -> int:
    lo = bus.read(ptr & 0xFF)
    hi = bus.read((ptr + 1) & 0xFF)
    return (hi << 8) | lo


# --- Addressing Modes ---

def addr_implied(state: Mos6502CpuState, bus: AbstractBus) -> AddressingResult:
    return AddressingResult(AddressingMode.IMPLIED)


def addr_accumulator(state: Mos6502CpuState, bus: AbstractBus) -> AddressingResult:
    return AddressingResult(AddressingMode.ACCUMULATOR, operand_str="A")


# @intent:responsibility Immediate Mode (#$xx)
def addr_immediate(state: Mos6502CpuState, bus: AbstractBus) -> AddressingResult:
    val = fetch_byte(state, bus)
    return AddressingResult(AddressingMode.IMMEDIATE, value=val, operand_str=f"#${val:02X}", operand_bytes=(val,))


# @intent:responsibility Zero Page Mode ($xx)
def addr_zeropage(state: Mos6502CpuState, bus: AbstractBus) -> AddressingResult:
    addr = fetch_byte(state, bus)
    return AddressingResult(AddressingMode.ZERO_PAGE, address=addr, operand_str=f"${addr:02X}", operand_bytes=(addr,))


# @intent:responsibility Zero Page, X Mode ($xx,X)
# @intent:note 常にページ0内でラップアラウンドする (0xFF + 1 -> 0x00)。ページ交差の概念はない。
def addr_zeropage_x(state: Mos6502CpuState, bus: AbstractBus) -> AddressingResult:
    base = fetch_byte(state, bus)
    addr = (base + state.x) & 0xFF
    return AddressingResult(AddressingMode.ZERO_PAGE_X, address=addr, operand_str=f"${base:02X},X",
                            operand_bytes=(base,))


# @intent:responsibility Zero Page, Y Mode ($xx,Y) - LDX, STX only
def addr_zeropage_y(state: Mos6502CpuState, bus: AbstractBus) -> AddressingResult:
    base = fetch_byte(state, bus)
    addr = (base + state.y) & 0xFF
    return AddressingResult(AddressingMode.ZERO_PAGE_Y, address=addr, operand_str=f"${base:02X},Y",
                            operand_bytes=(base,))


# @intent:responsibility Absolute Mode ($xxxx)
def addr_absolute(state: Mos6502CpuState, bus: AbstractBus) -> AddressingResult:
    lo, hi = _fetch_word(state, bus)
    addr = (hi << 8) | lo
    return AddressingResult(AddressingMode.ABSOLUTE, address=addr, operand_str=f"${addr:04X}", operand_bytes=(lo, hi))


def _absolute_indexed(state: Mos6502CpuState, bus: AbstractBus, mode: AddressingMode,
                      index: int, suffix: str) -> AddressingResult:
    lo, hi = _fetch_word(state, bus)
    base_addr = (hi << 8) | lo
    addr = (base_addr + index) & 0xFFFF
    # ページ交差の有無だけを返す。+1サイクルを課すかは命令記述子側が決める (ストア系は課さない)。
    return AddressingResult(mode, address=addr, page_crossed=is_page_crossed(base_addr, addr),
                            operand_str=f"${base_addr:04X},{suffix}", operand_bytes=(lo, hi))


# @intent:responsibility Absolute, X Mode ($xxxx,X)
def addr_absolute_x(state: Mos6502CpuState, bus: AbstractBus) -> AddressingResult:
    return _absolute_indexed(state, bus, AddressingMode.ABSOLUTE_X, state.x, "X")


# @intent:responsibility Absolute, Y Mode ($xxxx,Y)
def addr_absolute_y(state: Mos6502CpuState, bus: AbstractBus) -> AddressingResult:
    return _absolute_indexed(state, bus, AddressingMode.ABSOLUTE_Y, state.y, "Y")


# @intent:responsibility Indirect Mode (($xxxx)) - JMP only
# @intent:note NMOS 6502のハードウェアバグを再現する。ポインタの下位バイトが$FFの場合、
#              上位バイトは次のページではなく同じページの先頭 ($xx00) から読まれる。
def addr_indirect(state: Mos6502CpuState, bus: AbstractBus) -> AddressingResult:
    ptr_lo, ptr_hi = _fetch_word(state, bus)
    ptr = (ptr_hi << 8) | ptr_lo

    eff_lo = bus.read(ptr)
    if ptr_lo == 0xFF:
        eff_hi = bus.read(ptr & 0xFF00)
    else:
        eff_hi = bus.read(ptr + 1)

    addr = (eff_hi << 8) | eff_lo
    return AddressingResult(AddressingMode.INDIRECT, address=addr, operand_str=f"(${ptr:04X})",
                            operand_bytes=(ptr_lo, ptr_hi))


# @intent:responsibility Indexed Indirect Mode (($xx,X)) - "Pre-indexed"
# @intent:note ゼロページ内でXを加算(ラップアラウンド)し、そこにあるポインタを読む。
def addr_indexed_indirect(state: Mos6502CpuState, bus: AbstractBus) -> AddressingResult:
    base = fetch_byte(state, bus)
    addr = _read_zero_page_word(bus, base + state.x)
    return AddressingResult(AddressingMode.INDEXED_INDIRECT, address=addr, operand_str=f"(${base:02X},X)",
                            operand_bytes=(base,))


# @intent:responsibility Indirect Indexed Mode (($xx),Y) - "Post-indexed"
# @intent:note ゼロページのポインタからベースアドレスを得てからYを加算。ページ交差判定はAbsolute,Yと同じ。
def addr_indirect_indexed(state: Mos6502CpuState, bus: AbstractBus) -> AddressingResult:
    ptr = fetch_byte(state, bus)
    base_addr = _read_zero_page_word(bus, ptr)
    addr = (base_addr + state.y) & 0xFFFF
    return AddressingResult(AddressingMode.INDIRECT_INDEXED, address=addr,
                            page_crossed=is_page_crossed(base_addr, addr),
                            operand_str=f"(${ptr:02X}),Y", operand_bytes=(ptr,))


# @intent:responsibility Relative Mode (Branch)
# @intent:note 戻り値のアドレスは分岐先の絶対アドレス。基準は命令を読み終えた後のPC。
#              page_crossed は分岐成立時のページ交差 (+1サイクル) の判定に使われる。
def addr_relative(state: Mos6502CpuState, bus: AbstractBus) -> AddressingResult:
    offset = fetch_byte(state, bus)
    signed = offset - 0x100 if offset >= 0x80 else offset
    dest_addr = (state.pc + signed) & 0xFFFF
    return AddressingResult(AddressingMode.RELATIVE, address=dest_addr,
                            page_crossed=is_page_crossed(state.pc, dest_addr),
                            operand_str=f"${dest_addr:04X}", operand_bytes=(offset,))


AddrFunc = Callable[[Mos6502CpuState, AbstractBus], AddressingResult]

RESOLVERS: Dict[AddressingMode, AddrFunc] = {
    AddressingMode.IMPLIED: addr_implied,
    AddressingMode.ACCUMULATOR: addr_accumulator,
    AddressingMode.IMMEDIATE: addr_immediate,
    AddressingMode.ZERO_PAGE: addr_zeropage,
    AddressingMode.ZERO_PAGE_X: addr_zeropage_x,
    AddressingMode.ZERO_PAGE_Y: addr_zeropage_y,
    AddressingMode.ABSOLUTE: addr_absolute,
    AddressingMode.ABSOLUTE_X: addr_absolute_x,
    AddressingMode.ABSOLUTE_Y: addr_absolute_y,
    AddressingMode.INDIRECT: addr_indirect,
    AddressingMode.INDEXED_INDIRECT: addr_indexed_indirect,
    AddressingMode.INDIRECT_INDEXED: addr_indirect_indexed,
    AddressingMode.RELATIVE: addr_relative,
}


# @intent:responsibility アドレッシングモードに従ってオペランドを解決する。
def resolve(mode: AddressingMode, state: Mos6502CpuState, bus: AbstractBus) -> AddressingResult:
    return RESOLVERS[mode](state, bus)


# @intent:responsibility 命令のオペランド値を取得する (Immediateなら値、それ以外は実効アドレスから読む)。
def read_operand(state: Mos6502CpuState, bus: AbstractBus, operand: AddressingResult) -> int:
    if operand.value is not None:
        return operand.value
    if operand.is_accumulator:
        return state.a
    return bus.read(operand.address)
