"""
TCP/UDP collector for SSH login notifications.
"""
