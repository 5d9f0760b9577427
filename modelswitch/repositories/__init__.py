"""
数据仓储层

约定：Repository 不负责 commit()；事务由 get_db 的依赖统一处理
"""
