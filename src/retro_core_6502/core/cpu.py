# retro_core_6502/core/cpu.py
"""
Core Layer (命令実行ループ)

命令境界での割り込み判定、フェッチ、デコード、実行、サイクル計上という
1 step の流れを定義します。アーキテクチャ固有の処理は各フックの実装に委ねます。
"""
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import Dict, Optional

from retro_core_6502.transport.bus import AbstractBus, Bus
from retro_core_6502.core.cycles import CycleAccountant
from retro_core_6502.core.snapshot import Snapshot, Operation, Metadata
from retro_core_6502.core.state import CpuState


# @intent:responsibility 抽象CPUの基本機能とインターフェースを定義します。
class AbstractCpu(ABC):
    """
    CPUコアの基底クラス。
    状態の所有、バス参照、サイクル累計を受け持ち、命令の意味はサブクラスが実装します。

    CPUインスタンスはスレッドセーフではありません。複数スレッドから共有する場合、
    呼び出し側が step/reset/割り込み要求の各呼び出しを排他制御する必要があります。
    """
    # @intent:pre-condition `bus`はAbstractBusの実装である必要があります。
    def __init__(self, bus: AbstractBus):
        self._bus = bus
        self._state: CpuState = self._create_initial_state()
        self._cycles = CycleAccountant()
        self._last_operation: Optional[Operation] = None
        # @intent:rationale Stateオブジェクトの直接操作を避けるため、protectedな命名規則を採用。
        #                  外部からのアクセスは`get_state()`/`restore_state()`を介して行う。

    @property
    def bus(self) -> AbstractBus:
        return self._bus

    # @intent:responsibility 電源投入以降の累計サイクル数を返します。
    @property
    def cycle_count(self) -> int:
        return self._cycles.total

    @property
    def instruction_count(self) -> int:
        return self._cycles.instructions

    @property
    def last_operation(self) -> Optional[Operation]:
        return self._last_operation

    # @intent:responsibility 初期状態のCpuStateオブジェクトを生成します。
    @abstractmethod
    def _create_initial_state(self) -> CpuState:
        """
        CPUの初期状態を生成して返します。
        具体的なCPUアーキテクチャはこのメソッドを実装し、
        そのアーキテクチャに特化したCpuStateのサブクラスを返します。
        """

    # @intent:responsibility CPUをリセットし、初期状態に戻します。
    def reset(self) -> None:
        self._state = self._create_initial_state()

    # @intent:responsibility 現在のCPUの状態のコピーを返します。
    # @intent:rationale 返却値を書き換えても内部状態に影響しないよう、独立コピーを返します。
    def get_state(self) -> CpuState:
        return self._state.replace()

    # @intent:responsibility 外部から与えられた状態をCPUに設定します（テストハーネス・巻き戻し用）。
    def restore_state(self, state: CpuState) -> None:
        self._state = state.replace()

    # @intent:responsibility 命令境界で保留中の割り込みを処理します。
    # @intent:return 割り込みに入った場合はその処理を表すOperation、そうでなければNone。
    def _service_interrupts(self) -> Optional[Operation]:
        return None

    # @intent:responsibility メモリから次の命令（オペコード）をフェッチします。
    @abstractmethod
    def _fetch(self) -> int:
        """
        現在のPCからオペコードをフェッチし、PCをオペコードの次に進めます。
        """

    # @intent:responsibility フェッチしたオペコードを解析し、Operationオブジェクトに変換します。
    @abstractmethod
    def _decode(self, opcode: int) -> Operation:
        """
        オペランドの読み出しとアドレス解決を行い、命令の詳細をOperationとして返します。
        実行に必要なアーキテクチャ固有の情報は Operation.context に格納します。
        """

    # @intent:responsibility デコードされた命令を実行し、消費サイクル数を返します。
    @abstractmethod
    def _execute(self, operation: Operation) -> int:
        pass

    # @intent:responsibility CPUを1命令進め、その命令が消費したサイクル数を返します。
    # @intent:rationale Template Methodパターンを採用し、共通の実行フロー
    #                  （割り込み判定→フェッチ→デコード→実行→サイクル計上）を定義します。
    def step(self) -> int:
        """
        1命令（または1回の割り込み受付）を完了まで実行し、消費サイクル数を返します。
        途中で中断されることはなく、戻った時点で全ての副作用は反映済みです。
        バスアクティビティログには、直近のstep()で発生したアクセスだけが残ります。
        """
        # 前処理: 前の命令までの残存ログを破棄
        if isinstance(self._bus, Bus):
            self._bus.get_and_clear_activity_log()

        operation = self._service_interrupts()
        if operation is not None:
            self._cycles.charge(operation.cycle_count, instruction=False)
        else:
            opcode = self._fetch()
            operation = self._decode(opcode)
            cycles = self._execute(operation)
            operation = replace(operation, cycle_count=cycles)
            self._cycles.charge(cycles)

        self._last_operation = operation
        return operation.cycle_count

    # @intent:responsibility 指定サイクル数以上を消費するまで命令を実行します。
    # @intent:return 実際に消費したサイクル数 (命令境界で止まるため要求値を超えることがあります)。
    def run(self, cycles: int) -> int:
        elapsed = 0
        while elapsed < cycles:
            elapsed += self.step()
        return elapsed

    # @intent:responsibility 1命令を実行し、その結果のスナップショットを返します。
    def trace(self) -> Snapshot:
        """
        step() を実行し、実行後の状態とバスアクティビティを含むSnapshotを返します。
        バスがアクティビティログを持たない場合、bus_activity は空になります。
        """
        self.step()

        bus_activity = self._bus.get_and_clear_activity_log() if isinstance(self._bus, Bus) else []
        operation = self._last_operation
        symbol_info = operation.mnemonic
        if operation.operands:
            symbol_info += " " + ", ".join(operation.operands)

        return Snapshot(
            state=self.get_state(),
            operation=operation,
            metadata=Metadata(cycle_count=self.cycle_count, symbol_info=symbol_info),
            bus_activity=bus_activity
        )

    @abstractmethod
    def get_register_map(self) -> Dict[str, int]:
        """
        現在のレジスタ値を辞書形式で返す。
        呼び出し側がCPUの内部構造を知らなくても値を参照できるようにするために使用される。
        """

    @abstractmethod
    def get_flag_state(self) -> Dict[str, bool]:
        """
        現在のフラグ（ステータスレジスタ）の各ビットの状態を辞書形式で返す。
        """
