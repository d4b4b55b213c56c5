"""Application services for meal capture: session driver and capture flow."""
