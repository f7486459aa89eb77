CHALLENGE_POOLS = {
    "caesar": [
        {
            "id": "caesar-basic",
            "title": "Caesar Cipher: The Basics",
            "description": "Crack this Caesar-encrypted text. The shift is 3.",
            "ciphertext": "KHOOR ZRUOG",
            "answer": "HELLO WORLD",
            "hint": "Every letter moved forward by 3: D→A, E→B, F→C...",
            "difficulty": 1,
            "points": 100,
        },
        {
            "id": "caesar-unknown-shift",
            "title": "Caesar Cipher: Unknown Shift",
            "description": "This time the shift is unknown. Find it.",
            "ciphertext": "WKH TXLFN EURZQ IRA",
            "answer": "THE QUICK BROWN FOX",
            "hint": "Try different shifts, or use frequency analysis.",
            "difficulty": 2,
            "points": 150,
        },
    ],
    "vigenere": [
        {
            "id": "vigenere-key",
            "title": "Vigenère Cipher",
            "description": 'Decrypt this Vigenère ciphertext with the keyword "KEY".',
            "ciphertext": "RIJVSUYVJN",
            "answer": "HELLOWORLD",
            "hint": "Repeat KEY under the text and subtract: R-K=H, I-E=E, J-Y=L...",
            "difficulty": 3,
            "points": 200,
        },
    ],
    "morse": [
        {
            "id": "morse-hello",
            "title": "Morse Code",
            "description": "Translate this Morse code into English.",
            "ciphertext": ".... . .-.. .-.. --- / .-- --- .-. .-.. -..",
            "answer": "HELLO WORLD",
            "hint": "A dot (.) is a short signal, a dash (-) a long one. Letters are separated by spaces, words by /.",
            "difficulty": 1,
            "points": 120,
        },
    ],
    "atbash": [
        {
            "id": "atbash-hello",
            "title": "Atbash Cipher",
            "description": "Break this Atbash ciphertext (A=Z, B=Y, C=X...).",
            "ciphertext": "SVOOL DLIOW",
            "answer": "HELLO WORLD",
            "hint": "Reverse the alphabet: A↔Z, B↔Y, C↔X, D↔W, E↔V...",
            "difficulty": 1,
            "points": 110,
        },
    ],
}

COMMON_PASSWORDS = [
    "123456", "password", "123456789", "12345678", "12345",
    "111111", "1234567", "sunshine", "qwerty", "iloveyou",
    "admin", "welcome", "123123", "654321", "password1",
    "abc123", "dragon", "1234", "hello", "letmein",
    "monkey", "1234567890", "welcome1", "master", "superman",
]

# Preset crack lab levels: target length, character classes and attack mode.
CRACK_LEVELS = {
    "easy": {"length": 4, "lowercase": False, "uppercase": False, "digits": True, "symbols": False,
             "mode": "brute-force"},
    "medium": {"length": 6, "lowercase": True, "uppercase": False, "digits": True, "symbols": False,
               "mode": "dictionary"},
    "hard": {"length": 8, "lowercase": True, "uppercase": True, "digits": True, "symbols": False,
             "mode": "hybrid"},
    "expert": {"length": 12, "lowercase": True, "uppercase": True, "digits": True, "symbols": True,
               "mode": "hybrid"},
}
