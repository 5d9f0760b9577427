"""
数据库模块
"""
from modelswitch.db.base import Base

__all__ = ["Base"]
