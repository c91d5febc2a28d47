"""
Event Verification Engine.
Cross-checks generated events against Eventbrite, Ticketmaster, Meetup and
Google Places listings; scores each candidate with a weighted match and
reports discrepancies, tolerating any subset of sources failing.
"""
