# -*- coding: utf-8 -*-
"""
执行选项
"""

from dataclasses import dataclass


@dataclass
class ExecutionOptions:
    """所有修改性操作共享的执行选项

    Attributes:
        what_if: 演练模式，执行全部检查并输出将要进行的操作，但不做任何修改
        verbose: 输出外部命令的完整输出
    """
    what_if: bool = False
    verbose: bool = False
