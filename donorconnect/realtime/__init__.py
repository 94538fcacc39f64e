from .channel import RealtimeChannel

__all__ = ['RealtimeChannel']
