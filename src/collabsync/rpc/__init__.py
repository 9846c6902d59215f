"""Typed RPC client for the remote collaboration API."""

from collabsync.rpc.client import RpcClient, encode_request
from collabsync.rpc.operations import Operation, OperationRegistry, UnsupportedOperationError

__all__ = [
    "Operation",
    "OperationRegistry",
    "RpcClient",
    "UnsupportedOperationError",
    "encode_request",
]
