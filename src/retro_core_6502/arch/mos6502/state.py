# src/retro_core_6502/arch/mos6502/state.py
"""
MOS 6502 CPUの状態定義。

レジスタファイル (PC, S, A, X, Y, P) と、割り込み入力のラッチを保持します。
"""
from dataclasses import dataclass
from typing import Dict

from retro_core_6502.core.state import CpuState

# MOS 6502 ステータスレジスタ (P) ビットマスク
# @intent:constant ビット順 (上位→下位) は N V 1 B D I Z C。
C_FLAG = 0x01  # Carry
Z_FLAG = 0x02  # Zero
I_FLAG = 0x04  # Interrupt Disable
D_FLAG = 0x08  # Decimal Mode
B_FLAG = 0x10  # Break (スタック上にのみ意味を持つ)
R_FLAG = 0x20  # Reserved (常に1)
V_FLAG = 0x40  # Overflow
N_FLAG = 0x80  # Negative

FLAG_MASKS: Dict[str, int] = {
    "N": N_FLAG,
    "V": V_FLAG,
    "B": B_FLAG,
    "D": D_FLAG,
    "I": I_FLAG,
    "Z": Z_FLAG,
    "C": C_FLAG,
}

# @intent:constant 各レジスタのビット幅マスク。代入時に自動的に適用されます。
_REGISTER_MASKS = {"pc": 0xFFFF, "sp": 0xFF, "a": 0xFF, "x": 0xFF, "y": 0xFF}

STACK_POINTER_AT_RESET = 0xFD
STATUS_AT_RESET = R_FLAG | I_FLAG


def _flag_property(mask: int) -> property:
    def getter(self) -> bool:
        return (self.p & mask) != 0

    def setter(self, value: bool) -> None:
        if value:
            self.p |= mask
        else:
            self.p &= ~mask

    return property(getter, setter)


# @intent:responsibility MOS 6502 CPUのレジスタとフラグの状態を保持する。
# @intent:rationale レジスタ幅のラップアラウンドと P のビット5固定は代入時に強制し、
#                  どの命令ハンドラから書き込まれても不変条件が崩れないようにする。
@dataclass
class Mos6502CpuState(CpuState):
    """
    MOS 6502 CPUのレジスタ状態。

    sp はスタックページ ($0100-$01FF) 内の8bitオフセットとして保持します。
    irq_pending / nmi_pending は割り込み入力のラッチで、命令境界で参照されます。
    """
    sp: int = STACK_POINTER_AT_RESET
    a: int = 0
    x: int = 0
    y: int = 0
    p: int = STATUS_AT_RESET
    irq_pending: bool = False
    nmi_pending: bool = False

    def __setattr__(self, name, value):
        if name == "p":
            value = (value & 0xFF) | R_FLAG
        elif name in _REGISTER_MASKS:
            value &= _REGISTER_MASKS[name]
        super().__setattr__(name, value)

    flag_c = _flag_property(C_FLAG)
    flag_z = _flag_property(Z_FLAG)
    flag_i = _flag_property(I_FLAG)
    flag_d = _flag_property(D_FLAG)
    flag_b = _flag_property(B_FLAG)
    flag_v = _flag_property(V_FLAG)
    flag_n = _flag_property(N_FLAG)

    # @intent:responsibility 名前 (N V B D I Z C) でフラグを取得する。
    def get_flag(self, name: str) -> bool:
        return (self.p & FLAG_MASKS[name.upper()]) != 0

    # @intent:responsibility 名前 (N V B D I Z C) でフラグを設定する。
    def set_flag(self, name: str, value: bool) -> None:
        mask = FLAG_MASKS[name.upper()]
        if value:
            self.p |= mask
        else:
            self.p &= ~mask

    # @intent:responsibility 複数のフラグをまとめて設定する。例: update_flags(n=True, z=False)
    def update_flags(self, **flags: bool) -> None:
        for name, value in flags.items():
            self.set_flag(name, value)

    def pack_p(self) -> int:
        return self.p | R_FLAG

    # @intent:note ビット5は常に1に強制される。
    def unpack_p(self, value: int) -> None:
        self.p = value

    # @intent:responsibility N = bit7, Z = (value == 0) を設定する。ロード・転送・論理・シフト命令共通。
    def set_nz(self, value: int) -> None:
        value &= 0xFF
        self.flag_n = (value & 0x80) != 0
        self.flag_z = value == 0
