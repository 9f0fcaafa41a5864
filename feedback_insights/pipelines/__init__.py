"""
pipelines/ — Analysis run lifecycle

Modules:
    analysis_state.py         - Transient per-run state
    progress.py               - Progress sinks
    orchestrator.py           - Analysis state machine + single-flight registry
    status.py                 - Status view for the analysis panel
"""
