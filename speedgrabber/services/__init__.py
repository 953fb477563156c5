"""Services for speedgrabber: filesystem probe and storage clients."""
from .aws_cli import AwsCliStorage
from .filesystem import LocalFilesystemProbe
from .http_storage import HttpStorage
from .local_storage import LocalStorage

__all__ = [
    "AwsCliStorage",
    "HttpStorage",
    "LocalFilesystemProbe",
    "LocalStorage",
]
