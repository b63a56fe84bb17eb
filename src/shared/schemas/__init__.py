from .dto import LocationRecord, MeasurementRecord, ParsedEvent, build_measurement
