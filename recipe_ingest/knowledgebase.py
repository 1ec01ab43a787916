"""
===============================================================================
knowledgebase.py: Swedish unit vocabulary and nutrient code table
===============================================================================

-------------------------------------------------------------------------------
Purpose:
    Centralizes the fixed vocabularies shared by the ingredient parser and the
    nutrition matcher, so both read the same closed lists.

-------------------------------------------------------------------------------
Contents:
    • UNITS: the closed set of Swedish kitchen units recognised after a
      quantity ("2 msk", "600 g", "1 1/2 dl").
            msk  = matsked (tablespoon)
            tsk  = tesked (teaspoon)
            krm  = kryddmått (pinch, 1 ml)
            port = portion
            st   = styck (piece)

    • NUTRIENT_RULES: how entries of a Livsmedelsverket nutrient breakdown
      map onto the five macro fields. Each rule lists abbreviation codes
      (`forkortning`), name substrings (`namn`) and an optional required unit.

-------------------------------------------------------------------------------
Notes:
    • Everything here is lowercase.
    • Rule order matters: an entry is assigned to the first rule it matches.

===============================================================================
"""

UNITS = (
    "msk", "tsk", "krm", "port",
    "kg", "dl", "ml", "cl", "st", "g", "l",
)

# (field, codes, exact names, name substrings, required unit or None)
NUTRIENT_RULES = (
    ("calories", ("ener",), (), ("energi",), "kcal"),
    ("protein", ("prot",), (), ("protein",), None),
    ("carbs", ("kolh",), (), ("kolhydrat",), None),
    ("fat", ("fett",), ("fett", "fett, totalt"), (), None),
    ("fiber", ("fibe",), (), ("fiber", "fibrer"), None),
)
