"""Core configuration, persistence, security and validation"""
