"""Customer-service training session engine."""
