"""
Input normalization shared by tenants and roles.
"""


def normalize_name(name):
    """Strip surrounding whitespace and collapse inner runs to one space."""
    if name is None:
        return ''
    return ' '.join(str(name).split())
