"""Building blocks of Google Congestion Control, and packet pacers."""