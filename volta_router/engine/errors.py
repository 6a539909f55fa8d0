class RoutingError(Exception):
    """Base for every deterministic routing failure surfaced to the caller."""

    code = "routing_error"
    status_code = 500


class UnsupportedCountry(RoutingError):
    code = "unsupported_country"
    status_code = 400

    def __init__(self, country: str):
        self.country = country
        super().__init__(f"country {country} not supported")


class NoProcessorsConfigured(RoutingError):
    code = "no_processors_configured"
    status_code = 503

    def __init__(self, country: str):
        self.country = country
        super().__init__(f"no processors available for country {country}")


class NoDataAvailable(RoutingError):
    code = "no_data_available"
    status_code = 503

    def __init__(self, country: str):
        self.country = country
        super().__init__(f"no processor data available for country {country}")


class ProcessorNotFound(RoutingError):
    code = "processor_not_found"
    status_code = 404

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"processor {name} not found")
