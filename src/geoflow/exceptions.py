"""geoflow 异常定义模块."""


class GeoFlowError(Exception):
    """geoflow 基础异常类."""

    pass
