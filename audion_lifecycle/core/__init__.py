"""Small building blocks shared by the lifecycle components."""
