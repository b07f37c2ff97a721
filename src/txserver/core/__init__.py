"""
Low-level networking components.

    connection.py     One accepted client: line reading, buffered writes, close
    socket_server.py  Listening socket and accept loop
    thread_pool.py    Worker threads, one connection per task
"""

from .connection import Connection, ConnectionState
from .socket_server import SocketServer
from .thread_pool import ThreadPool, Worker, WorkerState, Task

__all__ = [
    "Connection",
    "ConnectionState",
    "SocketServer",
    "ThreadPool",
    "Worker",
    "WorkerState",
    "Task",
]
