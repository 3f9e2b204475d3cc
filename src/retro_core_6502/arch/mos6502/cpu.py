# src/retro_core_6502/arch/mos6502/cpu.py
"""
MOS 6502 CPUエミュレーションの中心モジュール。
"""
from typing import Dict, Optional

from retro_core_6502.core.cpu import AbstractCpu
from retro_core_6502.core.snapshot import Operation
from retro_core_6502.core.state import CpuState
from retro_core_6502.transport.bus import AbstractBus
from retro_core_6502.arch.mos6502 import interrupts
from retro_core_6502.arch.mos6502.state import Mos6502CpuState
from retro_core_6502.arch.mos6502.instructions.base import fetch_byte
from retro_core_6502.arch.mos6502.instructions.maps import (
    OPCODE_TABLE, BINARY_ONLY_OPCODE_TABLE, decode_opcode, execute_instruction,
)


# @intent:responsibility MOS 6502 CPUの具体的なエミュレーションロジックを提供する。
class Mos6502Cpu(AbstractCpu):
    """
    MOS 6502 CPUをエミュレートするクラス。

    1回の step() は1命令 (または1回の割り込み受付) を完了まで実行し、
    その消費サイクル数を返す。メモリは全て bus 経由でアクセスする。

    decimal_enabled=False の場合、Dフラグは保持されるがADC/SBCは常に2進で動作する
    (Ricoh 2A03 など10進回路を持たない派生品)。
    """
    def __init__(self, bus: AbstractBus, decimal_enabled: bool = True):
        self._decimal_enabled = decimal_enabled
        self._opcode_table = OPCODE_TABLE if decimal_enabled else BINARY_ONLY_OPCODE_TABLE
        super().__init__(bus)

    @property
    def decimal_enabled(self) -> bool:
        return self._decimal_enabled

    # @intent:responsibility 電源投入直後の状態を生成する。PCはreset()でベクタから読み込まれる。
    def _create_initial_state(self) -> Mos6502CpuState:
        return Mos6502CpuState()

    # @intent:responsibility リセット処理。PCをリセットベクタ($FFFC/$FFFD)から読み込む。
    # @intent:note リセットシーケンス自体の7サイクルは累計に計上する (step()の戻り値には含まれない)。
    def reset(self) -> None:
        super().reset()
        interrupts.reset(self._state, self._bus)
        self._cycles.charge(interrupts.RESET_CYCLES, instruction=False)

    # @intent:responsibility IRQ入力をアサートする。Iフラグがクリアされた命令境界で受け付けられる。
    def trigger_irq(self) -> None:
        self._state.irq_pending = True

    # @intent:responsibility アサート中のIRQ要求を取り下げる (レベル入力の解除)。
    def clear_irq(self) -> None:
        self._state.irq_pending = False

    # @intent:responsibility NMIを要求する。Iフラグに関係なく次の命令境界で受け付けられる。
    def trigger_nmi(self) -> None:
        self._state.nmi_pending = True

    # @intent:responsibility 外部から与えられた状態を設定する。Pのビット5は1に強制される。
    def restore_state(self, state: CpuState) -> None:
        restored = Mos6502CpuState()
        for name in ("pc", "sp", "a", "x", "y", "p", "irq_pending", "nmi_pending"):
            if hasattr(state, name):
                setattr(restored, name, getattr(state, name))
        self._state = restored

    def _service_interrupts(self) -> Optional[Operation]:
        taken = interrupts.service_pending(self._state, self._bus)
        if taken is None:
            return None
        return Operation(opcode_hex="--", mnemonic=taken, cycle_count=interrupts.INTERRUPT_CYCLES, length=0)

    # @intent:responsibility 命令フェッチ。PCはオペコードの次へ進む。
    def _fetch(self) -> int:
        return fetch_byte(self._state, self._bus)

    def _decode(self, opcode: int) -> Operation:
        return decode_opcode(opcode, self._state, self._bus, self._opcode_table)

    def _execute(self, operation: Operation) -> int:
        return execute_instruction(operation, self._state, self._bus)

    # @intent:responsibility レジスタマップ (検査・デバッグ用) を返す。Sは8bitオフセット。
    def get_register_map(self) -> Dict[str, int]:
        state = self._state
        return {
            "PC": state.pc,
            "S": state.sp,
            "P": state.pack_p(),
            "A": state.a,
            "X": state.x,
            "Y": state.y,
        }

    def get_flag_state(self) -> Dict[str, bool]:
        state = self._state
        return {
            "N": state.flag_n,
            "V": state.flag_v,
            "B": state.flag_b,
            "D": state.flag_d,
            "I": state.flag_i,
            "Z": state.flag_z,
            "C": state.flag_c
        }
