"""
state/ — Progress Record ownership and the top-level Session state machine.

Import from the submodules directly:
    from state.progress import ProgressStore
    from state.session import Session, Screen
"""
