"""Matty AI Services"""
