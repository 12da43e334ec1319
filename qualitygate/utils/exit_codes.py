"""Centralized exit codes for the qg CLI."""


class ExitCodes:
    """Standard exit codes for a quality gate run."""

    SUCCESS = 0

    INVALID_INPUT = 1
    PHASE_ABORT = 2

    GATE_DECLINED = 3

    @classmethod
    def get_description(cls, code: int) -> str:
        """Get human-readable description for an exit code."""
        descriptions = {
            cls.SUCCESS: "Success - all gating phases passed",
            cls.INVALID_INPUT: "Targeting input rejected before any tool ran",
            cls.PHASE_ABORT: "An abort-on-failure phase failed - pipeline halted",
            cls.GATE_DECLINED: "Confirmation declined - terminal action not performed",
        }
        return descriptions.get(code, f"Unknown exit code: {code}")

