"""
modelswitch 后端

AI 模型提供商切换服务：管理提供商与 API Key，按用户切换当前提供商，
并把连接参数同步到外部 CLI 读取的 settings.json。
"""

__version__ = "1.0.0"
