"""
Protocol front ends for the local engine.

Modules:
    uci: UCI loop over stdin/stdout, run as `python interface/uci.py`.
         Usable by GUIs and as the reference engine for reference_remote mode.
"""
