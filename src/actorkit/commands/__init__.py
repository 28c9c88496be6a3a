"""CLI command implementations"""
