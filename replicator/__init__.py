"""
replicator - 쿼리 폴링 기반 CDC(변경 데이터 캡처) 서비스
"""
__version__ = "1.0.0"
