"""
Payroll Chat - interactive console client for a remote payroll agent.

Runs a multi-turn conversation inside one remote session: user input is
dispatched as agent runs, runs are polled to completion, and local files can
be uploaded and announced to the agent.
"""

__version__ = "1.0.0"
