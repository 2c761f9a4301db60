"""
Geotab HOS Alerter 수신인 관리
"""

__version__ = "1.0.0"
