"""Terminal input helpers: masked PIN entry and plain line input."""
import getpass


def read_pin(prompt: str, length: int = 6) -> str:
    """Read a masked numeric PIN of exactly ``length`` digits.

    Re-prompts until the input is valid. EOFError and KeyboardInterrupt
    propagate to the caller.
    """
    while True:
        pin = getpass.getpass(prompt).strip()
        if len(pin) == length and pin.isascii() and pin.isdigit():
            return pin
        print(f"PIN must be exactly {length} digits.")


def read_input(prompt: str) -> str:
    return input(prompt).strip()
