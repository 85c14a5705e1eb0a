"""
HTTP response cache backed by a relational store.
"""
