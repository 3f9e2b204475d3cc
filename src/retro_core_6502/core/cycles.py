# retro_core_6502/core/cycles.py
"""
Core Layer (サイクル計上)

命令ごとに消費されたクロックサイクルを算出し、累計を保持します。
"""


# @intent:responsibility 命令単位のサイクル数算出と累計サイクル数の管理を行います。
# @intent:rationale タイミングモデルは命令単位 (1 step = 1命令) とし、クロック単位の状態機械は持ちません。
class CycleAccountant:
    """
    CPUが消費したクロックサイクルの累計を保持するクラス。
    """
    def __init__(self):
        self._total = 0
        self._instructions = 0

    @property
    def total(self) -> int:
        return self._total

    @property
    def instructions(self) -> int:
        return self._instructions

    # @intent:responsibility 1命令分のサイクル数を算出します。
    # @intent:note ページ境界ペナルティは、命令がペナルティ対象 (読み出し系) の場合のみ加算されます。
    #              extra は分岐成立などの命令固有の追加サイクルです。
    @staticmethod
    def instruction_cycles(base_cycles: int, page_crossed: bool = False,
                           page_penalty: bool = False, extra: int = 0) -> int:
        cycles = base_cycles + extra
        if page_crossed and page_penalty:
            cycles += 1
        return cycles

    # @intent:responsibility 実行された命令のサイクル数を累計に加えます。
    def charge(self, cycles: int, instruction: bool = True) -> int:
        self._total += cycles
        if instruction:
            self._instructions += 1
        return cycles
