from pydantic import BaseModel, model_validator


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class IdealRange(BaseModel):
    """
    Parameters of an ideal-range score: values at ``min``/``max`` and beyond
    score 0, ``ideal_center`` scores 100.
    """
    min: float
    max: float
    ideal_min: float
    ideal_max: float
    ideal_center: float

    @model_validator(mode='after')
    def validate_ordering(self) -> "IdealRange":
        if self.min >= self.max:
            raise ValueError('min must be below max.')
        if not self.min <= self.ideal_min <= self.ideal_center <= self.ideal_max <= self.max:
            raise ValueError('Expected min <= ideal_min <= ideal_center <= ideal_max <= max.')
        if self.ideal_center in (self.min, self.max):
            raise ValueError('ideal_center must lie strictly inside (min, max).')
        return self
