"""
studio
Artifact generation and download orchestrator for a notebook studio web app,
driven purely through page evaluation and DOM polling.

Entry points:
  - studio.runner.run_studio(url, requests, config)
  - python -m studio.cli --url <notebook_url> --kind deck
"""
