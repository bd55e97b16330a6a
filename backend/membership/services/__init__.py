"""Business operations"""
