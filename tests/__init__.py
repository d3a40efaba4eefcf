"""Test suite"""
