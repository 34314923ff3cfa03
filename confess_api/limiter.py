"""
Rate limiter shared by routes that accept anonymous traffic.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

limiter = Limiter(key_func=get_remote_address)
