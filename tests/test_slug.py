from studio_scheduler.services.slug import slugify, unique_slug


def test_slugify():
    assert slugify("Dr. Smith") == "dr-smith"
    assert slugify("  Café Müller  ") == "cafe-muller"


def test_slugify_fallback():
    assert slugify("!!!") == "provider"


def test_unique_slug():
    taken = {"dr-smith", "dr-smith-2"}
    assert unique_slug("dr-smith", taken.__contains__) == "dr-smith-3"
    assert unique_slug("other", taken.__contains__) == "other"
