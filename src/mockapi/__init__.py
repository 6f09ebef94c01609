"""
MockAPI

Declarative HTTP mock server: describe endpoints in JSON or YAML and serve
dynamic mocked responses without writing handler code.
"""

__version__ = '1.0.0'
