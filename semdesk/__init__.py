"""
semdesk – personal workspace tracker with a Taiwan academic-semester calendar.
"""
