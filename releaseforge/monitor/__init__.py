"""Release monitor — Rich rendering of stage state and artifact checksums.

Modules
-------
renderer
    ``MonitorRenderer`` turns the orchestrator's ``StageMachine`` into a
    color-coded stage table and prints the final checksum table.
"""
