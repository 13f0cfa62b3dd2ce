from importlib import metadata

version = metadata.version('docvault')

__all__ = ['version']
