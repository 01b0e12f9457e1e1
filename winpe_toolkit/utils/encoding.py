#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
编码处理工具
DISM、PowerShell等外部工具的输出可能是UTF-8或系统代码页
"""

import locale


def safe_decode(data: bytes, fallback_encoding: str = 'gbk') -> str:
    """
    安全解码字节数据

    Args:
        data: 要解码的字节数据
        fallback_encoding: 备用编码，默认为gbk

    Returns:
        str: 解码后的字符串
    """
    if not data:
        return ""

    try:
        return data.decode('utf-8')
    except UnicodeDecodeError:
        pass

    system_encoding = locale.getpreferredencoding(False) or 'utf-8'
    if system_encoding.lower().replace('-', '') != 'utf8':
        try:
            return data.decode(system_encoding)
        except (UnicodeDecodeError, LookupError):
            pass

    try:
        return data.decode(fallback_encoding)
    except (UnicodeDecodeError, LookupError):
        pass

    # latin-1不会失败
    return data.decode('latin-1', errors='replace')
