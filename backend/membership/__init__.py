"""Alumni membership backend"""
