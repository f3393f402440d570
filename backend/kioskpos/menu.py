# Overview: The fixed kiosk menu shown as placeholder rows until real stock exists.

# (name, price_cents)
PREDEFINED_MENU = (
    ("Pani Puri", 4000),
    ("Bhel Puri", 5000),
    ("Sev Puri", 5000),
    ("Dahi Puri", 6000),
    ("Ragda Pattice", 6000),
    ("Masala Puri", 5000),
    ("Vada Pav", 3000),
    ("Samosa", 2500),
    ("Gulab Jamun", 12000),
    ("Masala Chai", 2000),
)
