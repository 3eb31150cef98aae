"""Utility functions for Sora Batch"""
