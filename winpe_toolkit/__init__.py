# -*- coding: utf-8 -*-
"""
WinPE工具箱
创建、定制、验证WinPE工作目录并写入可移动介质
"""

__version__ = '1.0.0'
