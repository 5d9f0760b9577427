"""
核心模块：配置与异常
"""
