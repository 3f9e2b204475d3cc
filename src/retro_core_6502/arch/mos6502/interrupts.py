# src/retro_core_6502/arch/mos6502/interrupts.py
"""
MOS 6502 割り込み・リセット制御。

RESET / IRQ / NMI / BRK のベクタ取得と、それらに必要なスタック操作を扱います。
割り込み入力は Mos6502CpuState の irq_pending / nmi_pending にラッチされ、
命令境界 (step の先頭) でのみ評価されます。
"""
import logging
from typing import Optional

from retro_core_6502.transport.bus import AbstractBus
from retro_core_6502.arch.mos6502.state import (
    Mos6502CpuState, B_FLAG, STACK_POINTER_AT_RESET, STATUS_AT_RESET,
)

logger = logging.getLogger(__name__)

STACK_BASE = 0x0100
NMI_VECTOR = 0xFFFA
RESET_VECTOR = 0xFFFC
IRQ_VECTOR = 0xFFFE  # BRKと共用

INTERRUPT_CYCLES = 7
RESET_CYCLES = 7


# --- Stack ---
# @intent:note プッシュは $0100+S に書いてからSを減らし、プルはSを増やしてから読む。
#              Sはページ1内でラップアラウンドし、オーバーフローは検出しない (実機と同じ)。

def push(state: Mos6502CpuState, bus: AbstractBus, value: int) -> None:
    bus.write(STACK_BASE | state.sp, value & 0xFF)
    state.sp = state.sp - 1


def pull(state: Mos6502CpuState, bus: AbstractBus) -> int:
    state.sp = state.sp + 1
    return bus.read(STACK_BASE | state.sp)


# @intent:responsibility 16bit値を上位バイト→下位バイトの順にプッシュする。
def push_word(state: Mos6502CpuState, bus: AbstractBus, value: int) -> None:
    push(state, bus, (value >> 8) & 0xFF)
    push(state, bus, value & 0xFF)


def pull_word(state: Mos6502CpuState, bus: AbstractBus) -> int:
    lo = pull(state, bus)
    hi = pull(state, bus)
    return (hi << 8) | lo


# --- Interrupt sequence ---

# @intent:responsibility 割り込みシーケンス共通部: PCH, PCL, P をプッシュし、Iをセットしてベクタへ飛ぶ。
# @intent:note プッシュされるPのBビットは、BRK由来なら1、ハードウェア割り込みなら0。ビット5は常に1。
def enter_interrupt(state: Mos6502CpuState, bus: AbstractBus, vector: int,
                    return_address: int, brk: bool) -> None:
    push_word(state, bus, return_address)
    pushed_p = state.pack_p()
    if brk:
        pushed_p |= B_FLAG
    else:
        pushed_p &= ~B_FLAG
    push(state, bus, pushed_p)
    state.flag_i = True
    state.pc = bus.read_word(vector)


# @intent:responsibility BRK命令の割り込みシーケンス。
# @intent:pre-condition state.pc はBRKオペコードの次 (パディングバイト) を指していること。
# @intent:note 戻りアドレスはパディングバイトを飛ばした BRK+2。
#              NMIが保留中であればNMIベクタに乗っ取られ、そのNMIは消費される (プッシュされるPはB=1のまま)。
def brk(state: Mos6502CpuState, bus: AbstractBus) -> None:
    return_address = (state.pc + 1) & 0xFFFF
    if state.nmi_pending:
        state.nmi_pending = False
        vector = NMI_VECTOR
        logger.debug("BRK at $%04X hijacked by pending NMI", (state.pc - 1) & 0xFFFF)
    else:
        vector = IRQ_VECTOR
    enter_interrupt(state, bus, vector, return_address, brk=True)


# @intent:responsibility 命令境界で保留中の割り込みを受け付ける。
# @intent:return 受け付けた割り込みの名前 ("NMI"/"IRQ")、受け付けなかった場合はNone。
# @intent:note NMIはIフラグに関係なく常に優先して受け付ける。IRQはIフラグがクリアの時のみ受け付け、
#              マスク中は要求がラッチされたまま残る。
def service_pending(state: Mos6502CpuState, bus: AbstractBus) -> Optional[str]:
    if state.nmi_pending:
        state.nmi_pending = False
        logger.debug("NMI taken at $%04X", state.pc)
        enter_interrupt(state, bus, NMI_VECTOR, state.pc, brk=False)
        return "NMI"
    if state.irq_pending and not state.flag_i:
        state.irq_pending = False
        logger.debug("IRQ taken at $%04X", state.pc)
        enter_interrupt(state, bus, IRQ_VECTOR, state.pc, brk=False)
        return "IRQ"
    return None


# @intent:responsibility リセットシーケンス。PCをリセットベクタから読み込み、I=1, D=0 とする。
# @intent:note A/X/Y は0、Sは$FDに初期化し、保留中の割り込み要求は破棄する。
def reset(state: Mos6502CpuState, bus: AbstractBus) -> None:
    state.a = 0
    state.x = 0
    state.y = 0
    state.sp = STACK_POINTER_AT_RESET
    state.p = STATUS_AT_RESET
    state.flag_d = False
    state.flag_i = True
    state.irq_pending = False
    state.nmi_pending = False
    state.pc = bus.read_word(RESET_VECTOR)
    logger.info("Reset vector $%04X -> PC=$%04X", RESET_VECTOR, state.pc)
