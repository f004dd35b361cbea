"""Services module - business logic over storage and the LLM provider."""

from .registry import Services, build_services, init_services, get_services

__all__ = ['Services', 'build_services', 'init_services', 'get_services']
