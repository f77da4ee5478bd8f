from fastapi import HTTPException
from typing import Optional, Any


class AppException(HTTPException):
    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[Any] = None,
    ):
        super().__init__(status_code=status_code, detail={
            "error_code": error_code,
            "message": message,
            "details": details,
        })
        self.error_code = error_code
        self.message = message
        self.details = details


class NotFoundError(AppException):
    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            status_code=404,
            error_code=f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found: {resource_id}",
        )
        self.resource = resource
        self.resource_id = resource_id


class ValidationError(AppException):
    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(
            status_code=400,
            error_code="VALIDATION_ERROR",
            message=message,
            details=details,
        )


class InvalidArgumentError(AppException):
    """缺失或格式错误的必填参数（400），在访问数据库之前抛出"""
    def __init__(self, argument: str, message: Optional[str] = None):
        super().__init__(
            status_code=400,
            error_code="INVALID_ARGUMENT",
            message=message or f"Missing or malformed argument: {argument}",
            details={"argument": argument},
        )
        self.argument = argument


class InternalError(AppException):
    """底层存储失败（500），整个计算中止，不返回部分结果"""
    def __init__(self, message: str = "Internal server error", details: Optional[Any] = None):
        super().__init__(
            status_code=500,
            error_code="INTERNAL_ERROR",
            message=message,
            details=details,
        )
