# Package initializer exposing the public API through lazy imports.
__version__ = "1.0.0"


def __getattr__(name: str):
    if name == "generate_sample":
        from .sampler import generate_sample

        return generate_sample
    if name in {"validate_parameters", "parameter_warnings"}:
        from .validator import parameter_warnings, validate_parameters

        return {
            "validate_parameters": validate_parameters,
            "parameter_warnings": parameter_warnings,
        }[name]
    if name == "load_population":
        from .loader import load_population

        return load_population
    if name == "generate_reports":
        from .reporter import generate_reports

        return generate_reports
    raise AttributeError(name)
