"""
Memory safety tests for the pin boundary.

- Pinned buffers cannot be resized or collected
- Release returns relocation/collection rights to the runtime
- Many concurrent guards neither deadlock nor leak threads
"""
