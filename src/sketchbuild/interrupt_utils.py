"""Utilities for handling KeyboardInterrupt in try-except blocks.

Builds run external tools and drain their output on worker threads; a Ctrl-C
caught anywhere must still reach the main thread.
"""

import _thread


def handle_keyboard_interrupt_properly(ke: KeyboardInterrupt) -> None:
    """Propagate KeyboardInterrupt to the main thread, then re-raise it.

    Usage:
        try:
            runner.run(cmd)
        except KeyboardInterrupt as ke:
            handle_keyboard_interrupt_properly(ke)

    Raises:
        KeyboardInterrupt: Always
    """
    _thread.interrupt_main()
    raise ke
