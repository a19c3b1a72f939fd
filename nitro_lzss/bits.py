def bits(byte: int) -> tuple[bool, ...]:
    """Returns the 8 flags of a control byte, most significant bit first"""
    return tuple((byte >> shift) & 1 != 0 for shift in range(7, -1, -1))
