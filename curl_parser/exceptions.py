class InvalidArgumentError(ValueError):
    """Команда curl пустая, разбирать нечего."""
