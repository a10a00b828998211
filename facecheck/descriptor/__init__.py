"""
Descriptor module - vector đặc trưng khuôn mặt gửi lên server.
"""

from .descriptor import Descriptor, describe, descriptor_length, extract_descriptor

__all__ = [
    'Descriptor',
    'describe',
    'descriptor_length',
    'extract_descriptor',
]
