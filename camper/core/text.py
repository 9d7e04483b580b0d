def capitalize_words(value: object) -> str:
    """Upper-case the first letter of every space-separated word, leave the rest as typed."""
    if not isinstance(value, str) or not value:
        return "Invalid input"
    return " ".join(w[:1].upper() + w[1:] for w in value.split(" "))
