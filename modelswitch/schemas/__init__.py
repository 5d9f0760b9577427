"""
请求/响应数据模式
"""
