"""
Pure helpers shared by the web service: locale paths, roles, plans and copy.
"""
