"""
mtrfleet - 多主机MTR网络路径诊断

通过SSH在一组探测主机上并发执行mtr，并把输出解析为逐跳的延迟/丢包记录
"""
__version__ = "1.0.0"
