def first_present(data, *names, default=None):
    """First non-empty value among alternative field names (camelCase or snake_case)."""
    for name in names:
        value = data.get(name)
        if value is not None and value != "":
            return value
    return default
