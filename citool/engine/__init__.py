"""Engine module - templating, task documents and the linear task runner."""
