"""
业务逻辑层
"""
