# core/catalogue/queries.py
# GraphQL documents for the Hardcover catalogue API

SEARCH_BOOKS_BY_TITLE = """
  query SearchBooksByTitle($query: String!, $per_page: Int!, $page: Int!) {
    search(
      query: $query
      query_type: "Book"
      per_page: $per_page
      page: $page
    ) {
      results
    }
  }
"""

SEARCH_BOOKS_BY_ISBN = """
  query SearchBooksByISBN($query: String!) {
    search(
      query: $query
      query_type: "Book"
      per_page: 10
      page: 1
    ) {
      results
    }
  }
"""

SEARCH_AUTHORS_BY_NAME = """
  query SearchAuthorsByName($query: String!, $per_page: Int!, $page: Int!) {
    search(
      query: $query
      query_type: "Author"
      per_page: $per_page
      page: $page
    ) {
      results
    }
  }
"""

GET_BOOK_BY_ID = """
  query GetBookById($id: Int!) {
    books_by_pk(id: $id) {
      id
      title
      description
      release_year
      image {
        url
      }
      editions {
        isbn_10
        isbn_13
      }
      contributions {
        author {
          id
          name
          bio
          image {
            url
          }
        }
      }
    }
  }
"""

GET_AUTHOR_WITH_BOOKS = """
  query GetAuthorWithBooks($id: Int!) {
    authors_by_pk(id: $id) {
      id
      name
      bio
      image {
        url
      }
      contributions(order_by: {book: {release_year: desc}}) {
        book {
          id
          title
          description
          release_year
          image {
            url
          }
          editions {
            isbn_10
            isbn_13
          }
        }
      }
    }
  }
"""
