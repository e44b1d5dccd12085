"""
Allow running the viewer directly: python -m escapetime
"""
from .app import run

run()
