"""
Agencies app - tenancy root of the Gestion360 platform.
Agencies, members, subscriptions, rankings and platform settings.
"""
