"""Browser engines, launched browsers, contexts and their options."""
