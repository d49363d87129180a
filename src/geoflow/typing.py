"""geoflow 类型定义模块."""

from typing import Any, Callable, Dict, List, Tuple, Union

# 请求体中的任意 JSON 值（标量、数组或对象）
JsonValue = Any

# geo_distance 查询体（对象节点）
QueryBody = Dict[str, Any]

# 坐标点的原始编码：对象、数组（列表或元组）或字符串
PointEncoding = Union[Dict[str, Any], List[Any], Tuple[Any, ...], str]

# 弃用警告接收器
# 格式: callable(warning_message) -> None
WarningSink = Callable[[str], None]
