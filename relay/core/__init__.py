"""Events, sinks, errors and logging shared by the relay."""
