"""Thrift bindings for the osquery extensions API.

The IDL ships with the package and is loaded at import time, so the
message layout stays whatever ``osquery.thrift`` says it is.
"""

from pathlib import Path

import thriftpy2

IDL_PATH = Path(__file__).with_name("osquery.thrift")

osquery_thrift = thriftpy2.load(str(IDL_PATH), module_name="osquery_thrift")

ExtensionManager = osquery_thrift.ExtensionManager
ExtensionResponse = osquery_thrift.ExtensionResponse
ExtensionStatus = osquery_thrift.ExtensionStatus
ExtensionException = osquery_thrift.ExtensionException
ExtensionCode = osquery_thrift.ExtensionCode

__all__ = [
    "IDL_PATH",
    "osquery_thrift",
    "ExtensionManager",
    "ExtensionResponse",
    "ExtensionStatus",
    "ExtensionException",
    "ExtensionCode",
]
