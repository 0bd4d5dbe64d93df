"""REST API for Journal Coach"""
