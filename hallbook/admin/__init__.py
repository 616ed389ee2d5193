"""
Administration Module

Platform statistics, account moderation (block, role change, deletion) and
hall approval for admins.
"""
