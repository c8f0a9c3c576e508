"""Pages, frames, handles and the objects a page produces."""
