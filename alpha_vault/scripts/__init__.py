"""실행 스크립트"""
