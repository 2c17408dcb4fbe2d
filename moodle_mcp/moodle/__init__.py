"""Moodle Web Service 客户端"""
