"""Steps concretos do Atlas CI."""
