"""Matty AI Routes"""
