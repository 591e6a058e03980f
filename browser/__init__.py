"""
browser
Playwright page access used by the studio orchestrator.
"""
